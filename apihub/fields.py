"""Field descriptors: per-definition response shape for documentation and forms."""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .events import ChangeEvent, ChangeType, EventBus

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"


class FieldFormat(str, Enum):
    NONE = "none"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DECIMAL = "decimal"
    INTEGER = "integer"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    CUSTOM = "custom"


_DATE_RE = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")
_DATETIME_RE = re.compile(
    r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}[T ]\d{1,2}:\d{1,2}(:\d{1,2})?(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$"
)


@dataclass
class FieldDescriptor:
    name: str
    semantic_type: FieldType = FieldType.STRING
    format: FieldFormat = FieldFormat.NONE
    description: str = ""
    label: str = ""
    default: Any = None

    def __post_init__(self):
        self.semantic_type = FieldType(self.semantic_type)
        self.format = FieldFormat(self.format)
        if not self.label:
            self.label = generate_label(self.name)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["semantic_type"] = self.semantic_type.value
        data["format"] = self.format.value
        return data


def generate_label(name: str) -> str:
    """``site_name`` / ``siteName`` -> ``Site Name``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("/", "-").replace("Z", "+00:00"))
    except ValueError:
        return None


def detect_type(value: Any) -> FieldType:
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, str):
        if _DATE_RE.match(value) and _parse_date(value):
            return FieldType.DATE
        if _DATETIME_RE.match(value):
            return FieldType.DATETIME
        return FieldType.STRING
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    if isinstance(value, Mapping):
        return FieldType.OBJECT
    return FieldType.STRING


def detect_format(value: Any, field_type: FieldType) -> FieldFormat:
    if field_type == FieldType.NUMBER:
        return FieldFormat.INTEGER if isinstance(value, int) else FieldFormat.DECIMAL
    if field_type == FieldType.DATE:
        return FieldFormat.DATE
    if field_type == FieldType.DATETIME:
        return FieldFormat.DATETIME
    return FieldFormat.NONE


class FieldManager:
    def __init__(self):
        self._fields: dict[str, list[FieldDescriptor]] = {}

    def attach(self, events: EventBus):
        return events.subscribe(ChangeType.REMOVED, self._on_removed)

    def _on_removed(self, event: ChangeEvent) -> None:
        self.clear_fields(event.key)

    def get_fields(self, key: str) -> list[FieldDescriptor]:
        return list(self._fields.get(key, []))

    def set_fields(self, key: str, fields: Iterable[FieldDescriptor]) -> None:
        self._fields[key] = [
            f if isinstance(f, FieldDescriptor) else FieldDescriptor(**f) for f in fields
        ]

    def add_field(self, key: str, field: FieldDescriptor) -> None:
        """Append ``field`` or replace the descriptor with the same name."""
        fields = self._fields.setdefault(key, [])
        for i, existing in enumerate(fields):
            if existing.name == field.name:
                fields[i] = field
                return
        fields.append(field)

    def remove_field(self, key: str, name: str) -> bool:
        fields = self._fields.get(key, [])
        kept = [f for f in fields if f.name != name]
        self._fields[key] = kept
        return len(kept) != len(fields)

    def clear_fields(self, key: str) -> None:
        self._fields.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._fields)

    def detect_fields(self, key: str, sample: Any, save: bool = False) -> list[FieldDescriptor]:
        """Infer descriptors from a sample response.

        Lists are sampled by their first element. Existing descriptors with
        the same name are kept as they are.
        """
        item = sample[0] if isinstance(sample, list) and sample else sample
        if not isinstance(item, Mapping):
            logger.warning(f"Cannot detect fields for '{key}': sample is not an object")
            return []

        existing = {f.name: f for f in self._fields.get(key, [])}
        detected = []
        for name, value in item.items():
            if name in existing:
                detected.append(existing[name])
                continue
            field_type = detect_type(value)
            detected.append(
                FieldDescriptor(
                    name=name,
                    semantic_type=field_type,
                    format=detect_format(value, field_type),
                )
            )
        if save:
            self.set_fields(key, detected)
        return detected

    def transform_data(self, key: str, data: Any) -> Any:
        """Project ``data`` onto the descriptors for ``key`` and coerce values."""
        fields = self._fields.get(key)
        if not fields or data is None:
            return data
        if isinstance(data, list):
            return [self._transform_object(item, fields) for item in data]
        return self._transform_object(data, fields)

    def _transform_object(self, obj: Any, fields: list[FieldDescriptor]) -> Any:
        if not isinstance(obj, Mapping):
            return obj
        return {f.name: _coerce(obj.get(f.name), f) for f in fields}

    def export(self) -> dict[str, list[dict[str, Any]]]:
        return {key: [f.to_dict() for f in fields] for key, fields in self._fields.items()}

    def import_fields(self, data: Mapping[str, Iterable[Mapping[str, Any]]]) -> None:
        for key, fields in data.items():
            self.set_fields(key, [FieldDescriptor(**f) for f in fields])


def _coerce(value: Any, field: FieldDescriptor) -> Any:
    if value is None:
        return field.default
    kind = field.semantic_type
    if kind == FieldType.NUMBER:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return field.default if field.default is not None else 0
        return int(number) if number.is_integer() and field.format == FieldFormat.INTEGER else number
    if kind in (FieldType.DATE, FieldType.DATETIME):
        if isinstance(value, (date, datetime)):
            return value
        parsed = _parse_date(str(value))
        if parsed is None:
            return field.default
        return parsed.date() if kind == FieldType.DATE else parsed
    if kind == FieldType.BOOLEAN:
        return bool(value)
    if kind == FieldType.STRING:
        return str(value)
    return value
