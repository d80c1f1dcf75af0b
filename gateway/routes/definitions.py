"""Catalogue routes: definition CRUD, import, field and variable descriptors."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from apihub import ApiManager, Definition, DefinitionRecord, FieldDescriptor, VariableDescriptor
from apihub.fields import FieldFormat, FieldType
from gateway.dependencies import get_ready_manager

router = APIRouter(prefix="/api/definitions", tags=["definitions"])


class DefinitionCreate(DefinitionRecord):
    key: str = Field(min_length=1)


class DefinitionImport(BaseModel):
    definitions: dict[str, dict[str, Any]]
    overwrite: bool = False


class FieldSchema(BaseModel):
    name: str = Field(min_length=1)
    semantic_type: FieldType = FieldType.STRING
    format: FieldFormat = FieldFormat.NONE
    description: str = ""
    label: str = ""
    default: Any = None


class VariableSchema(BaseModel):
    name: str = Field(min_length=1)
    semantic_type: FieldType = FieldType.STRING
    required: bool = False
    default: Any = None
    description: str = ""


def _serialize(definition: Definition) -> dict[str, Any]:
    return {
        "key": definition.key,
        **definition.to_record(),
        "custom_handler": definition.handler is not None,
        "has_mock": definition.mock is not None,
    }


def _require(manager: ApiManager, key: str) -> Definition:
    definition = manager.get(key)
    if definition is None:
        raise HTTPException(status_code=404, detail=f"API definition not found: {key}")
    return definition


@router.get("")
async def list_definitions(
    category: Optional[str] = None, manager: ApiManager = Depends(get_ready_manager)
):
    """List definitions, optionally filtered by category."""
    if category is None:
        definitions = manager.get_all()
    else:
        try:
            definitions = manager.store.get_by_category(category)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    return [_serialize(d) for d in definitions.values()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_definition(req: DefinitionCreate, manager: ApiManager = Depends(get_ready_manager)):
    """Register a definition; an existing key is replaced."""
    record = req.model_dump(exclude={"key"})
    definition = manager.register(req.key, record)
    await manager.save()
    return _serialize(definition)


@router.post("/import")
async def import_definitions(req: DefinitionImport, manager: ApiManager = Depends(get_ready_manager)):
    """Bulk import exported records."""
    try:
        imported = manager.import_apis(req.definitions, overwrite=req.overwrite)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await manager.save()
    return {"imported": imported, "total": len(manager.get_all())}


@router.get("/{key}")
async def get_definition(key: str, manager: ApiManager = Depends(get_ready_manager)):
    return _serialize(_require(manager, key))


@router.patch("/{key}")
async def update_definition(
    key: str, partial: dict[str, Any], manager: ApiManager = Depends(get_ready_manager)
):
    """Shallow-merge fields into a definition (creates it when absent)."""
    try:
        definition = manager.update(key, partial)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await manager.save()
    return _serialize(definition)


@router.delete("/{key}")
async def delete_definition(key: str, manager: ApiManager = Depends(get_ready_manager)):
    if not manager.remove(key):
        raise HTTPException(status_code=404, detail=f"API definition not found: {key}")
    await manager.save()
    return {"removed": key}


@router.get("/{key}/fields")
async def get_fields(key: str, manager: ApiManager = Depends(get_ready_manager)):
    _require(manager, key)
    return [f.to_dict() for f in manager.fields.get_fields(key)]


@router.put("/{key}/fields")
async def put_fields(
    key: str, fields: list[FieldSchema], manager: ApiManager = Depends(get_ready_manager)
):
    _require(manager, key)
    manager.fields.set_fields(key, [FieldDescriptor(**f.model_dump()) for f in fields])
    return [f.to_dict() for f in manager.fields.get_fields(key)]


@router.get("/{key}/variables")
async def get_variables(key: str, manager: ApiManager = Depends(get_ready_manager)):
    _require(manager, key)
    return [v.to_dict() for v in manager.variables.get_variables(key)]


@router.put("/{key}/variables")
async def put_variables(
    key: str, variables: list[VariableSchema], manager: ApiManager = Depends(get_ready_manager)
):
    _require(manager, key)
    manager.variables.set_variables(
        key, [VariableDescriptor(**v.model_dump()) for v in variables]
    )
    return [v.to_dict() for v in manager.variables.get_variables(key)]
