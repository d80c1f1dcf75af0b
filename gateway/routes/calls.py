"""Call routes: invoke, batch and diagnose catalogue entries over HTTP."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from apihub import ApiManager
from gateway.dependencies import get_manager, get_ready_manager

router = APIRouter(prefix="/api", tags=["calls"])


class CallRequest(BaseModel):
    params: dict[str, Any] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)


class BatchItem(CallRequest):
    key: str


class BatchRequest(BaseModel):
    calls: list[BatchItem]
    parallel: bool = True


class DiagnoseRequest(BaseModel):
    params: dict[str, Any] = Field(default_factory=dict)


@router.post("/call/{key}")
async def call_api(
    key: str,
    req: Optional[CallRequest] = None,
    manager: ApiManager = Depends(get_ready_manager),
):
    """Invoke one definition and return the normalized envelope."""
    req = req or CallRequest()
    try:
        return await manager.call(key, req.params, req.options)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/batch")
async def batch_call(req: BatchRequest, manager: ApiManager = Depends(get_ready_manager)):
    """Run several calls; failures are reported per item."""
    calls = [item.model_dump() for item in req.calls]
    results = await manager.batch_call(calls, parallel=req.parallel)
    return {
        "results": [r.to_dict() for r in results],
        "succeeded": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
    }


@router.post("/test/{key}")
async def test_api(
    key: str,
    req: Optional[DiagnoseRequest] = None,
    manager: ApiManager = Depends(get_manager),
):
    """Single diagnostic attempt; never raises for call failures."""
    req = req or DiagnoseRequest()
    return await manager.test(key, req.params)
