"""Logistics FastAPI application.

Web server that processes delivery and driver commands synchronously via
HTTP and streams scoped delivery sets over WebSockets. Each HTTP request is
wrapped in the logistics domain context; the stream endpoint pushes the
context itself.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (handlers fire in the request)
#   - "production" → event_processing = "async" (handlers fire via Engine)
# With async processing set FANOUT_TRANSPORT=redis so change notices raised in
# the Engine reach the streams held by this process.
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from logistics.domain import logistics  # noqa: E402

logistics.init()

_DOMAIN_PREFIXES = ("/deliveries", "/drivers")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Listen for delivery change notices while the app serves streams."""
    from logistics.fanout.hub import get_hub
    from logistics.fanout.transport import get_transport

    get_transport().start()
    yield
    get_transport().stop()
    get_hub().close_all()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Logistics API",
    description="Delivery lifecycle and live driver tracking",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the logistics domain context for API requests."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with logistics.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from logistics.api import delivery_router, driver_router  # noqa: E402
from logistics.api.errors import register_error_handlers  # noqa: E402

app.include_router(delivery_router)
app.include_router(driver_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": logistics.name})
