"""API hub gateway: the catalogue and call surface over HTTP."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

from apihub import (
    ApiError,
    ApiManager,
    DisabledError,
    NotFoundError,
    NotReadyError,
    ParamError,
    Settings,
    TransportError,
    ValidationError,
)
from apihub.audit import init_audit_db
from gateway.middleware import AuditMiddleware
from gateway.routes import calls, definitions, variables

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    DisabledError: 409,
    ParamError: 400,
    ValidationError: 502,
    TransportError: 502,
    NotReadyError: 503,
}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Translate catalogue and invocation errors to HTTP responses."""
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)), 500
    )
    content = {"detail": exc.message, "error_type": type(exc).__name__, "key": exc.key}
    if isinstance(exc, TransportError):
        content["upstream_status"] = exc.status
        content["upstream_body"] = exc.body
        content["timeout"] = exc.timeout
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def create_app(
    manager: Optional[ApiManager] = None, enable_audit: bool = True
) -> FastAPI:
    """Build the gateway app around ``manager`` (or one built from the environment)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the audit database and the manager on startup."""
        if enable_audit:
            await init_audit_db()
        if not await app.state.manager.init():
            logger.error("API manager failed to initialize; calls will retry on demand")
        yield

    app = FastAPI(
        title="API Hub",
        description="Runtime catalogue of API definitions with a uniform call surface",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.manager = manager or ApiManager.from_settings()

    if enable_audit:
        app.add_middleware(AuditMiddleware)
    app.add_exception_handler(ApiError, api_error_handler)

    app.include_router(definitions.router)
    app.include_router(calls.router)
    app.include_router(variables.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        current = app.state.manager
        return {
            "status": "ok",
            "state": current.state.value,
            "definitions": len(current.store),
        }

    @app.get("/api/docs", response_class=PlainTextResponse)
    async def get_docs(keys: Optional[str] = None):
        """Return generated Markdown documentation for the catalogue."""
        current = app.state.manager
        await current.wait_for_ready()
        selected = [k.strip() for k in keys.split(",") if k.strip()] if keys else None
        return current.generate_docs(keys=selected)

    return app


logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=Settings.from_env().log_level,
)

app = create_app()
