"""API hub: a runtime catalogue of API definitions with a uniform call surface."""

from .config import Settings
from .definitions import ApiCategory, ApiMethod, ApiStatus, Definition, DefinitionRecord
from .errors import (
    ApiError,
    DisabledError,
    NotFoundError,
    NotReadyError,
    ParamError,
    TransportError,
    ValidationError,
)
from .events import CallEventType, ChangeEvent, ChangeType, EventBus
from .fields import FieldDescriptor, FieldFormat, FieldManager, FieldType
from .manager import ApiManager, ManagerState
from .persistence import MemoryPersistence, SqlitePersistence
from .proxy import ApiProxy, BatchResult, CallOptions
from .store import DefinitionStore
from .transport import HttpxTransport, TransportRequest, TransportResponse
from .variables import VariableDescriptor, VariableManager, VariableScope

__all__ = [
    "Settings",
    "ApiCategory",
    "ApiMethod",
    "ApiStatus",
    "Definition",
    "DefinitionRecord",
    "ApiError",
    "DisabledError",
    "NotFoundError",
    "NotReadyError",
    "ParamError",
    "TransportError",
    "ValidationError",
    "CallEventType",
    "ChangeEvent",
    "ChangeType",
    "EventBus",
    "FieldDescriptor",
    "FieldFormat",
    "FieldManager",
    "FieldType",
    "ApiManager",
    "ManagerState",
    "MemoryPersistence",
    "SqlitePersistence",
    "ApiProxy",
    "BatchResult",
    "CallOptions",
    "DefinitionStore",
    "HttpxTransport",
    "TransportRequest",
    "TransportResponse",
    "VariableDescriptor",
    "VariableManager",
    "VariableScope",
]
