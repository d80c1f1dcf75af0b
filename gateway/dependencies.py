"""Request dependencies shared by the gateway routers."""

from fastapi import Request

from apihub import ApiManager, NotReadyError


def get_manager(request: Request) -> ApiManager:
    """Return the manager bound to the running app."""
    return request.app.state.manager


async def get_ready_manager(request: Request) -> ApiManager:
    """Like ``get_manager`` but waits for initialization first."""
    manager = get_manager(request)
    if not await manager.wait_for_ready():
        raise NotReadyError("API manager is not ready")
    return manager
