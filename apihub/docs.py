"""Markdown documentation generated from the definition catalogue."""

import json
from typing import Any, Iterable, Optional

from .definitions import ApiStatus, Definition
from .fields import FieldManager, FieldType
from .store import DefinitionStore
from .variables import VariableManager

_STATUS_BADGES = {
    ApiStatus.ENABLED: "enabled",
    ApiStatus.DISABLED: "**disabled**",
    ApiStatus.DEPRECATED: "_deprecated_",
}

_EXAMPLE_VALUES = {
    FieldType.STRING: "example",
    FieldType.NUMBER: 0,
    FieldType.BOOLEAN: True,
    FieldType.DATE: "2024-01-01",
    FieldType.DATETIME: "2024-01-01T00:00:00",
    FieldType.OBJECT: {},
    FieldType.ARRAY: [],
    FieldType.ENUM: "value",
}


def _example_params(key: str, variables: Optional[VariableManager]) -> dict[str, Any]:
    if variables is None:
        return {}
    params = {
        v.name: _EXAMPLE_VALUES.get(v.semantic_type, "value")
        for v in variables.get_variables(key)
        if v.default is None
    }
    return variables.apply_defaults(key, params)


def _example_response(key: str, fields: Optional[FieldManager]) -> dict[str, Any]:
    descriptors = fields.get_fields(key) if fields is not None else []
    data = {
        f.name: f.default if f.default is not None else _EXAMPLE_VALUES.get(f.semantic_type)
        for f in descriptors
    }
    return {"success": True, "data": data or None}


def generate_definition_markdown(
    definition: Definition,
    fields: Optional[FieldManager] = None,
    variables: Optional[VariableManager] = None,
    examples: bool = True,
) -> list[str]:
    key = definition.key
    lines = [
        f"### {definition.name} (`{key}`)",
        "",
        f"`{definition.method.value} {definition.url}` | status: {_STATUS_BADGES[definition.status]}"
        f" | timeout: {definition.timeout}ms | retries: {definition.retries}"
        f" | cache: {definition.cache_time}ms",
        "",
    ]
    if definition.handler is not None:
        lines.extend(["Served by a custom handler.", ""])
    if definition.description:
        lines.extend([definition.description, ""])

    if definition.headers:
        lines.append("**Headers:**")
        for name, value in definition.headers.items():
            lines.append(f"- {name}: {value}")
        lines.append("")

    declared = variables.get_variables(key) if variables is not None else []
    if declared:
        lines.append("**Params:**")
        for v in declared:
            required = "required" if v.required else "optional"
            parts = [f"{v.name}: {v.semantic_type.value}, {required}"]
            if v.default is not None:
                parts.append(f"default {v.default!r}")
            if v.description:
                parts.append(v.description)
            lines.append(f"- {', '.join(parts)}")
        lines.append("")

    descriptors = fields.get_fields(key) if fields is not None else []
    if descriptors:
        lines.append("**Fields:**")
        lines.append("")
        lines.append("| Field | Label | Type | Format | Description |")
        lines.append("| ----- | ----- | ---- | ------ | ----------- |")
        for f in descriptors:
            lines.append(
                f"| {f.name} | {f.label} | {f.semantic_type.value} | {f.format.value} | {f.description} |"
            )
        lines.append("")

    if examples:
        lines.append("**Example call:**")
        lines.append("```python")
        lines.append(f"await manager.call({key!r}, {_example_params(key, variables)!r})")
        lines.append("```")
        lines.append("")
        lines.append("**Example response:**")
        lines.append("```json")
        lines.append(json.dumps(_example_response(key, fields), indent=2, default=str))
        lines.append("```")
        lines.append("")

    return lines


def generate_markdown(
    store: DefinitionStore,
    fields: Optional[FieldManager] = None,
    variables: Optional[VariableManager] = None,
    keys: Optional[Iterable[str]] = None,
    title: str = "API Reference",
    toc: bool = True,
    examples: bool = True,
) -> str:
    """
    Render definitions grouped by category.

    Args:
        store: Catalogue to document
        fields: Optional response field descriptors
        variables: Optional request variable descriptors
        keys: Restrict output to these keys (unknown keys are skipped)
        title: Top-level heading
        toc: Include a table of contents
        examples: Include example call and response blocks

    Returns:
        Markdown string
    """
    all_definitions = store.get_all()
    selected = list(keys) if keys is not None else sorted(all_definitions)
    definitions = [all_definitions[k] for k in selected if k in all_definitions]

    lines = [f"# {title}", ""]
    if not definitions:
        lines.append("No API definitions found.")
        return "\n".join(lines) + "\n"

    by_category: dict[str, list[Definition]] = {}
    for definition in definitions:
        by_category.setdefault(definition.category.value, []).append(definition)

    if toc:
        lines.append("## Contents")
        lines.append("")
        for category, members in by_category.items():
            lines.append(f"- {category.title()}")
            for definition in members:
                lines.append(f"  - {definition.name} (`{definition.key}`)")
        lines.append("")

    for category, members in by_category.items():
        lines.append(f"## {category.title()}")
        lines.append("")
        for definition in members:
            lines.extend(generate_definition_markdown(definition, fields, variables, examples))

    return "\n".join(lines)
