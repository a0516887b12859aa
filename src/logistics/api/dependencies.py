"""Actor resolution for API requests.

Authentication happens upstream; the gateway forwards the signed-in actor
in the ``X-Actor-Id``, ``X-Actor-Role`` and ``X-Company-Id`` headers and the
API trusts them.
"""

from fastapi import Header, HTTPException

from logistics.consoles.session import Actor, Role


def build_actor(actor_id: str, role: str, company_id: str | None = None) -> Actor:
    try:
        parsed = Role(role.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {role}")
    if parsed == Role.OPERATOR and not company_id:
        raise HTTPException(status_code=400, detail="Operators must send X-Company-Id")
    return Actor(id=actor_id, role=parsed, company_id=company_id)


def current_actor(
    x_actor_id: str = Header(),
    x_actor_role: str = Header(),
    x_company_id: str | None = Header(default=None),
) -> Actor:
    return build_actor(x_actor_id, x_actor_role, x_company_id)


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        raise HTTPException(
            status_code=403,
            detail=f"{actor.role.value} may not perform this action",
        )


def require_self_or_operator(actor: Actor, driver_id: str) -> None:
    """Drivers act on their own record; operators may act on any driver."""
    if actor.role == Role.OPERATOR:
        return
    if actor.role == Role.DRIVER and actor.id == driver_id:
        return
    raise HTTPException(status_code=403, detail="Not permitted for this driver")
