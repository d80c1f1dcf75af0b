"""Scoped variable routes: values substituted into ``${name}`` call params."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from apihub import ApiManager
from apihub.variables import VariableScope
from gateway.dependencies import get_ready_manager

router = APIRouter(prefix="/api/variables", tags=["variables"])


class VariableValue(BaseModel):
    value: Any
    scope: VariableScope = VariableScope.USER


class VariableImport(BaseModel):
    values: dict[str, Any]
    scope: VariableScope = VariableScope.USER
    overwrite: bool = False


@router.get("")
async def list_values(
    scope: Optional[VariableScope] = None, manager: ApiManager = Depends(get_ready_manager)
):
    """Values of one scope, or all scopes merged by precedence."""
    return manager.variables.export_values(scope)


@router.put("/{name}")
async def set_value(name: str, req: VariableValue, manager: ApiManager = Depends(get_ready_manager)):
    try:
        manager.variables.set_value(name, req.value, req.scope)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"name": name, "value": req.value, "scope": req.scope.value}


@router.delete("/{name}")
async def delete_value(
    name: str,
    scope: VariableScope = VariableScope.USER,
    manager: ApiManager = Depends(get_ready_manager),
):
    try:
        removed = manager.variables.remove_value(name, scope)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail=f"Variable not found: {name}")
    return {"removed": name, "scope": scope.value}


@router.post("/import")
async def import_values(req: VariableImport, manager: ApiManager = Depends(get_ready_manager)):
    try:
        imported = manager.variables.import_values(req.values, req.scope, req.overwrite)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"imported": imported}
