"""Map arbitrary upstream responses into the ``{success, data}`` envelope."""

from typing import Any, Mapping


def normalize_response(raw: Any) -> dict[str, Any]:
    """
    Normalize a response.

    Examples:
        {"foo": 1}                  -> {"success": True, "data": {"foo": 1}}
        {"success": True, "foo": 1} -> {"success": True, "data": {"foo": 1}}
        {"success": True}           -> {"success": True, "data": None}
        [1, 2]                      -> {"success": True, "data": [1, 2]}

    Mappings that already carry ``success`` together with ``data`` or
    ``error`` are returned as a plain dict copy.
    """
    if not isinstance(raw, Mapping):
        return {"success": True, "data": raw}

    if "success" not in raw:
        return {"success": True, "data": dict(raw)}

    if "data" not in raw and not raw.get("error"):
        rest = {k: v for k, v in raw.items() if k != "success"}
        return {"success": raw["success"], "data": rest or None}

    return dict(raw)
