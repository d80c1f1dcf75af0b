"""Variables: per-definition request parameter shape and scoped values.

Descriptors record which params a definition accepts. Scoped values fill
``${name}`` placeholders in call params; lookups go session, user,
global, then env.
"""

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from .events import ChangeEvent, ChangeType, EventBus
from .fields import FieldType

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


class VariableScope(str, Enum):
    SESSION = "session"
    USER = "user"
    GLOBAL = "global"
    ENV = "env"


# highest precedence first
SCOPE_ORDER = (VariableScope.SESSION, VariableScope.USER, VariableScope.GLOBAL, VariableScope.ENV)
_MISSING = object()


@dataclass
class VariableDescriptor:
    name: str
    semantic_type: FieldType = FieldType.STRING
    required: bool = False
    default: Any = None
    description: str = ""

    def __post_init__(self):
        self.semantic_type = FieldType(self.semantic_type)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["semantic_type"] = self.semantic_type.value
        return data


class VariableManager:
    def __init__(self, env: Optional[Mapping[str, Any]] = None):
        self._variables: dict[str, list[VariableDescriptor]] = {}
        self._values: dict[VariableScope, dict[str, Any]] = {scope: {} for scope in VariableScope}
        self._values[VariableScope.ENV] = dict(env or {})

    def attach(self, events: EventBus):
        return events.subscribe(ChangeType.REMOVED, self._on_removed)

    def _on_removed(self, event: ChangeEvent) -> None:
        self.clear_variables(event.key)

    def get_variables(self, key: str) -> list[VariableDescriptor]:
        return list(self._variables.get(key, []))

    def set_variables(self, key: str, variables: Iterable[Any]) -> None:
        self._variables[key] = [
            v if isinstance(v, VariableDescriptor) else VariableDescriptor(**v) for v in variables
        ]

    def add_variable(self, key: str, variable: VariableDescriptor) -> None:
        variables = self._variables.setdefault(key, [])
        for i, existing in enumerate(variables):
            if existing.name == variable.name:
                variables[i] = variable
                return
        variables.append(variable)

    def remove_variable(self, key: str, name: str) -> bool:
        variables = self._variables.get(key, [])
        kept = [v for v in variables if v.name != name]
        self._variables[key] = kept
        return len(kept) != len(variables)

    def clear_variables(self, key: str) -> None:
        self._variables.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._variables)

    def missing(self, key: str, params: Mapping[str, Any]) -> list[str]:
        """Names of required variables absent from ``params`` and without a default."""
        return [
            v.name
            for v in self._variables.get(key, [])
            if v.required and v.default is None and params.get(v.name) is None
        ]

    def apply_defaults(self, key: str, params: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(params)
        for v in self._variables.get(key, []):
            if merged.get(v.name) is None and v.default is not None:
                merged[v.name] = v.default
        return merged

    def export(self) -> dict[str, list[dict[str, Any]]]:
        return {key: [v.to_dict() for v in variables] for key, variables in self._variables.items()}

    # -- scoped values ---------------------------------------------------

    def get_value(self, name: str, scope: Union[VariableScope, str, None] = None) -> Any:
        """Value of ``name`` in ``scope``, or from the first scope that has it."""
        if scope is not None:
            return self._values[VariableScope(scope)].get(name)
        for candidate in SCOPE_ORDER:
            if name in self._values[candidate]:
                return self._values[candidate][name]
        return None

    def has_value(self, name: str) -> bool:
        return any(name in self._values[scope] for scope in SCOPE_ORDER)

    def set_value(
        self, name: str, value: Any, scope: Union[VariableScope, str] = VariableScope.USER
    ) -> None:
        self._values[self._writable(scope)][name] = value

    def remove_value(
        self, name: str, scope: Union[VariableScope, str] = VariableScope.USER
    ) -> bool:
        return self._values[self._writable(scope)].pop(name, _MISSING) is not _MISSING

    def clear_values(self, scope: Union[VariableScope, str] = VariableScope.USER) -> None:
        self._values[self._writable(scope)] = {}

    def get_values(self, scope: Union[VariableScope, str, None] = None) -> dict[str, Any]:
        """Values of one scope, or every scope merged by precedence."""
        if scope is not None:
            return dict(self._values[VariableScope(scope)])
        merged: dict[str, Any] = {}
        for candidate in reversed(SCOPE_ORDER):
            merged.update(self._values[candidate])
        return merged

    def export_values(self, scope: Union[VariableScope, str, None] = None) -> dict[str, Any]:
        return {k: v for k, v in self.get_values(scope).items() if not callable(v)}

    def import_values(
        self,
        values: Mapping[str, Any],
        scope: Union[VariableScope, str] = VariableScope.USER,
        overwrite: bool = False,
    ) -> int:
        """Copy ``values`` into ``scope``; existing names are kept unless ``overwrite``."""
        if not isinstance(values, Mapping):
            raise ValueError("Imported variables must be a mapping of name to value")
        target = self._values[self._writable(scope)]
        imported = 0
        for name, value in values.items():
            if name in target and not overwrite:
                continue
            target[name] = value
            imported += 1
        return imported

    def replace_variables(self, value: Any) -> Any:
        """Substitute ``${name}`` placeholders in strings nested in ``value``.

        A string that is exactly one placeholder takes the variable's value
        unchanged, so numbers and objects keep their type. Unknown names are
        left as written.
        """
        if isinstance(value, str):
            return self._replace_string(value)
        if isinstance(value, Mapping):
            return {k: self.replace_variables(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.replace_variables(v) for v in value]
        return value

    def _replace_string(self, text: str) -> Any:
        whole = _PLACEHOLDER.fullmatch(text)
        if whole and self.has_value(whole.group(1)):
            return self.get_value(whole.group(1))

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if not self.has_value(name):
                return match.group(0)
            return str(self.get_value(name))

        return _PLACEHOLDER.sub(substitute, text)

    @staticmethod
    def _writable(scope: Union[VariableScope, str]) -> VariableScope:
        scope = VariableScope(scope)
        if scope == VariableScope.ENV:
            raise ValueError("Environment variables are read-only")
        return scope
