"""Gateway middleware for audit logging."""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from apihub.audit import log_request

AUDITED_PREFIX = "/api/"


def _match_route(request: Request) -> tuple[str, dict]:
    """Route template and path params for the request, if any route matches."""
    for route in request.app.router.routes:
        match, child_scope = route.matches(request.scope)
        if match == Match.FULL and hasattr(route, "path"):
            return route.path, child_scope.get("path_params", {})
    return request.url.path, {}


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that writes an audit entry for every ``/api/`` request."""

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(AUDITED_PREFIX):
            return await call_next(request)

        endpoint, path_params = _match_route(request)
        client_ip = request.client.host if request.client else "unknown"
        params = dict(request.query_params)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            await log_request(
                endpoint,
                request.method,
                client_ip,
                params,
                500,
                str(exc),
                api_key=path_params.get("key"),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            raise

        await log_request(
            endpoint,
            request.method,
            client_ip,
            params,
            response.status_code,
            api_key=path_params.get("key"),
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return response
