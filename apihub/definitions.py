"""Definition data model: one logical endpoint in the catalogue."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT_MS = 15000


class ApiMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ApiCategory(str, Enum):
    SYSTEM = "system"
    DATA = "data"
    DEVICE = "device"
    CUSTOM = "custom"
    ADMIN = "admin"
    AUTH = "auth"
    REPORT = "report"


class ApiStatus(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    DEPRECATED = "deprecated"


# Only these survive export/import.
PRIMITIVE_FIELDS = (
    "name",
    "description",
    "url",
    "method",
    "category",
    "status",
    "timeout",
    "retries",
    "cache_time",
    "headers",
)

# Closures and fixtures; kept in memory only.
BEHAVIOR_FIELDS = ("handler", "params_processor", "transform", "validate", "mock")

_CALLABLE_BEHAVIORS = ("handler", "params_processor", "transform", "validate")

_ALIASES = {"cacheTime": "cache_time"}


class DefinitionRecord(BaseModel):
    """Serializable subset of a definition, used for export/import."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    description: str = ""
    url: str = ""
    method: ApiMethod = ApiMethod.GET
    category: ApiCategory = ApiCategory.CUSTOM
    status: ApiStatus = ApiStatus.ENABLED
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, ge=0)
    retries: int = Field(default=0, ge=0)
    cache_time: int = Field(default=0, ge=0, alias="cacheTime")
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("category", "status", mode="before")
    @classmethod
    def _lower_enum(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def _none_headers(cls, value: Any) -> Any:
        return {} if value is None else value


@dataclass(frozen=True)
class HttpStrategy:
    """Build a transport request from a URL template."""

    url_template: str
    params_processor: Optional[Callable] = None


@dataclass(frozen=True)
class CustomStrategy:
    """Hand the whole invocation to a user-supplied closure."""

    handler: Callable


InvocationStrategy = Union[HttpStrategy, CustomStrategy]


@dataclass
class Definition:
    """A stored endpoint description merged with system defaults."""

    key: str
    name: str
    url: str = ""
    method: ApiMethod = ApiMethod.GET
    category: ApiCategory = ApiCategory.CUSTOM
    status: ApiStatus = ApiStatus.ENABLED
    timeout: int = DEFAULT_TIMEOUT_MS
    retries: int = 0
    cache_time: int = 0
    description: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    handler: Optional[Callable] = None
    params_processor: Optional[Callable] = None
    transform: Optional[Callable] = None
    validate: Optional[Callable] = None
    mock: Any = None

    @property
    def strategy(self) -> InvocationStrategy:
        if self.handler is not None:
            return CustomStrategy(self.handler)
        return HttpStrategy(self.url, self.params_processor)

    @property
    def disabled(self) -> bool:
        return self.status == ApiStatus.DISABLED

    def to_record(self) -> dict[str, Any]:
        """Primitive fields as JSON-compatible values."""
        return DefinitionRecord(
            **{name: getattr(self, name) for name in PRIMITIVE_FIELDS}
        ).model_dump(mode="json")

    def behaviors(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in BEHAVIOR_FIELDS
            if getattr(self, name) is not None
        }

    def as_config(self) -> dict[str, Any]:
        return {**self.to_record(), **self.behaviors()}


def _split_config(config: Mapping[str, Any]) -> tuple[dict, dict]:
    primitives: dict[str, Any] = {}
    behaviors: dict[str, Any] = {}
    for raw_name, value in config.items():
        name = _ALIASES.get(raw_name, raw_name)
        if name in PRIMITIVE_FIELDS:
            primitives[name] = value
        elif name in BEHAVIOR_FIELDS:
            if name in _CALLABLE_BEHAVIORS and value is not None and not callable(value):
                raise ValueError(f"'{name}' must be callable")
            behaviors[name] = value
        elif name == "key":
            continue
        else:
            raise ValueError(f"Unknown definition field: {raw_name}")
    return primitives, behaviors


def build_definition(
    key: str,
    config: Union[Mapping[str, Any], Definition],
    base: Optional[Definition] = None,
) -> Definition:
    """Merge ``config`` over ``base`` (or the system defaults).

    Raises ValueError for unknown fields or invalid primitive values.
    """
    if isinstance(config, Definition):
        config = config.as_config()

    primitives, behaviors = _split_config(config)
    if base is not None:
        primitives = {**base.to_record(), **primitives}
        behaviors = {**base.behaviors(), **behaviors}

    record = DefinitionRecord(**primitives)
    values = {name: getattr(record, name) for name in PRIMITIVE_FIELDS}
    values["headers"] = dict(record.headers)
    if not values["name"]:
        values["name"] = key

    return Definition(key=key, **values, **behaviors)
