"""Actors as supplied by the identity provider, and the scope each one sees."""

from dataclasses import dataclass
from enum import Enum

from logistics.fanout.scope import Scope


class Role(Enum):
    OPERATOR = "operator"
    DRIVER = "driver"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    company_id: str | None = None


def scope_for(actor: Actor) -> Scope:
    if actor.role == Role.OPERATOR:
        if not actor.company_id:
            raise ValueError("An operator must belong to a company")
        return Scope.operator(actor.company_id)
    if actor.role == Role.DRIVER:
        return Scope.driver(actor.id)
    return Scope.customer(actor.id)
