"""Facade over the store, proxy and metadata managers.

The manager owns the readiness state machine
(``UNINITIALIZED -> INITIALIZING -> READY``): it waits for the store to
load persisted definitions, seeds the baseline catalogue when the store
is empty, wires store events to cache and metadata cleanup, and gates the
public call surface on readiness. Call params pass through scoped
variable substitution before they reach the proxy.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from .cache import Clock, monotonic_ms
from .config import Settings
from .defaults import DEFAULT_DEFINITIONS
from .definitions import Definition
from .docs import generate_markdown
from .errors import NotReadyError
from .events import ChangeEvent, ChangeType
from .fields import FieldManager
from .notify import Notifier
from .persistence import DefinitionPersistence, SqlitePersistence
from .proxy import ApiProxy, BatchResult
from .store import DefinitionStore
from .transport import HttpxTransport, Transport
from .variables import VariableManager

logger = logging.getLogger(__name__)


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class ApiManager:
    def __init__(
        self,
        transport: Optional[Transport] = None,
        persistence: Optional[DefinitionPersistence] = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = monotonic_ms,
        settings: Optional[Settings] = None,
        seed: Optional[Mapping[str, Mapping[str, Any]]] = None,
        store: Optional[DefinitionStore] = None,
    ):
        self.settings = settings or Settings()
        self.store = store or DefinitionStore(persistence)
        self.fields = FieldManager()
        self.variables = VariableManager(
            env={"API_BASE_URL": self.settings.base_url, **self.settings.variables}
        )
        self.proxy = ApiProxy(
            self.store,
            transport or HttpxTransport(base_url=self.settings.base_url),
            notifier=notifier,
            clock=clock,
            variables=self.variables,
            use_mocks=self.settings.use_mocks,
            retry_delay_ms=self.settings.retry_delay_ms,
        )
        if seed is None:
            seed = DEFAULT_DEFINITIONS if self.settings.seed_defaults else {}
        self.seed = seed
        self.state = ManagerState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task] = None
        self._unsubscribers: list[Callable[[], None]] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "ApiManager":
        """Build a manager backed by SQLite persistence and the httpx transport."""
        settings = settings or Settings.from_env()
        kwargs.setdefault("persistence", SqlitePersistence(settings.db_path))
        kwargs.setdefault("transport", HttpxTransport(base_url=settings.base_url))
        return cls(settings=settings, **kwargs)

    # -- lifecycle -------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self.state == ManagerState.READY

    async def init(self) -> bool:
        """Initialize once; concurrent callers share the in-flight attempt."""
        if self.ready:
            return True
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> bool:
        self.state = ManagerState.INITIALIZING
        logger.info("Initializing API manager")
        try:
            if not await self.store.wait_for_ready(self.settings.ready_timeout_ms):
                raise NotReadyError("Definition store did not become ready")
            if self.seed_defaults() and self.store.persistence is not None:
                await self.store.save()
            self._wire_events()
        except Exception:
            logger.exception("API manager initialization failed")
            self.state = ManagerState.UNINITIALIZED
            self._init_task = None
            return False

        self.state = ManagerState.READY
        logger.info(f"API manager ready with {len(self.store)} definitions")
        return True

    async def wait_for_ready(self, timeout_ms: Optional[int] = None) -> bool:
        if self.ready:
            return True
        if timeout_ms is None:
            timeout_ms = self.settings.ready_timeout_ms
        try:
            return await asyncio.wait_for(self.init(), timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.error(f"API manager not ready after {timeout_ms}ms")
            return False

    def seed_defaults(self) -> int:
        """Register the baseline catalogue, but only into an empty store."""
        if len(self.store) > 0:
            logger.info("API definitions already present, skipping default registration")
            return 0
        for key, config in self.seed.items():
            self.store.register(key, config)
        logger.info(f"Registered {len(self.seed)} default API definitions")
        return len(self.seed)

    def _wire_events(self) -> None:
        if self._unsubscribers:
            return
        events = self.store.events
        self._unsubscribers = [
            *self.proxy.attach(events),
            self.fields.attach(events),
            self.variables.attach(events),
            *(events.subscribe(change_type, self._log_change) for change_type in ChangeType),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @staticmethod
    def _log_change(event: ChangeEvent) -> None:
        logger.info(f"API {event.type.value}: {event.key}")

    async def _require_ready(self) -> None:
        if not await self.wait_for_ready():
            raise NotReadyError("API manager is not ready")

    # -- call surface ----------------------------------------------------

    async def call(
        self,
        key: str,
        params: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        await self._require_ready()
        params = self.variables.replace_variables(params or {})
        return await self.proxy.call(key, params, options)

    async def batch_call(
        self, calls: Sequence[Mapping[str, Any]], parallel: bool = True
    ) -> list[BatchResult]:
        await self._require_ready()
        calls = [
            {**item, "params": self.variables.replace_variables(item.get("params") or {})}
            for item in calls
        ]
        return await self.proxy.batch_call(calls, parallel)

    async def test(self, key: str, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        if not await self.wait_for_ready():
            return {
                "key": key,
                "success": False,
                "error": "API manager is not ready",
                "error_type": NotReadyError.__name__,
                "trace": [],
            }
        return await self.proxy.test(key, self.variables.replace_variables(params or {}))

    # -- catalogue -------------------------------------------------------

    def register(self, key: str, config: Mapping[str, Any]) -> Definition:
        return self.store.register(key, config)

    def update(self, key: str, partial: Mapping[str, Any]) -> Definition:
        return self.store.update(key, partial)

    def remove(self, key: str) -> bool:
        return self.store.remove(key)

    def get(self, key: str) -> Optional[Definition]:
        return self.store.get(key)

    def get_all(self) -> dict[str, Definition]:
        return self.store.get_all()

    def export_apis(self) -> dict[str, dict[str, Any]]:
        return self.store.export_apis()

    def import_apis(self, data: Mapping[str, Mapping[str, Any]], overwrite: bool = False) -> int:
        return self.store.import_apis(data, overwrite)

    async def save(self) -> bool:
        return await self.store.save()

    def generate_docs(self, keys: Optional[Iterable[str]] = None, **kwargs) -> str:
        return generate_markdown(self.store, self.fields, self.variables, keys=keys, **kwargs)
