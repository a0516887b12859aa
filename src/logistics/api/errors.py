"""HTTP mapping of domain errors.

Protean's handlers cover the generic cases; the mappings below pin the
statuses clients of this API rely on. A rejected transition carries its
machine-readable reason so a client can tell "already done" from "too early".
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from logistics.delivery.guard import TransitionRejected

logger = structlog.get_logger(__name__)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.messages})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def _transition_rejected(request: Request, exc: TransitionRejected) -> JSONResponse:
    logger.info(
        "transition_rejected",
        path=request.url.path,
        reason=exc.reason.value,
        delivery_id=exc.delivery_id,
        current_status=exc.current_status,
    )
    return JSONResponse(
        status_code=409,
        content={
            "error": exc.message,
            "reason": exc.reason.value,
            "current_status": exc.current_status,
            "requested_status": exc.requested_status,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(TransitionRejected, _transition_rejected)
