"""Definition Store: keyed, runtime-mutable catalogue of endpoints."""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

import pydantic

from .definitions import ApiCategory, Definition, DefinitionRecord, build_definition
from .events import ChangeEvent, ChangeType, EventBus
from .persistence import DefinitionPersistence, Records

logger = logging.getLogger(__name__)


class DefinitionStore:
    """Holds definitions and emits change events after each mutation."""

    def __init__(
        self,
        persistence: Optional[DefinitionPersistence] = None,
        events: Optional[EventBus] = None,
    ):
        self.persistence = persistence
        self.events = events or EventBus()
        self._definitions: dict[str, Definition] = {}
        self._ready = persistence is None
        self._load_task: Optional[asyncio.Task] = None

    # -- queries ---------------------------------------------------------

    def get(self, key: str) -> Optional[Definition]:
        return self._definitions.get(key)

    def get_all(self) -> dict[str, Definition]:
        """Return a copy of the key -> definition mapping."""
        return dict(self._definitions)

    def get_by_category(self, category: Union[ApiCategory, str]) -> dict[str, Definition]:
        category = ApiCategory(category)
        return {
            key: definition
            for key, definition in self._definitions.items()
            if definition.category == category
        }

    def __contains__(self, key: str) -> bool:
        return key in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def ready(self) -> bool:
        return self._ready

    # -- mutations -------------------------------------------------------

    def register(self, key: str, config: Union[Mapping[str, Any], Definition]) -> Definition:
        """Store ``config`` merged with system defaults under ``key``."""
        definition = build_definition(key, config)
        self._definitions[key] = definition
        self.events.publish(ChangeEvent(ChangeType.REGISTERED, key, definition))
        return definition

    def update(self, key: str, partial: Mapping[str, Any]) -> Definition:
        """Shallow-merge ``partial`` into ``key``; creates the entry when absent."""
        definition = build_definition(key, partial, base=self._definitions.get(key))
        self._definitions[key] = definition
        self.events.publish(ChangeEvent(ChangeType.UPDATED, key, definition))
        return definition

    def remove(self, key: str) -> bool:
        definition = self._definitions.pop(key, None)
        if definition is None:
            logger.warning(f"Cannot remove unknown API definition: {key}")
            return False
        self.events.publish(ChangeEvent(ChangeType.REMOVED, key, definition))
        return True

    # -- export / import -------------------------------------------------

    def export_apis(self) -> Records:
        """Primitive-field records for every definition, keyed by definition key."""
        return {key: definition.to_record() for key, definition in self._definitions.items()}

    def import_apis(self, data: Mapping[str, Mapping[str, Any]], overwrite: bool = False) -> int:
        """Register records from ``data``; returns the number imported.

        Existing keys are skipped unless ``overwrite`` is set. All records
        are validated before any of them is applied.
        """
        if not isinstance(data, Mapping):
            raise ValueError("Imported API definitions must be a mapping of key to record")

        records: dict[str, DefinitionRecord] = {}
        for key, raw in data.items():
            try:
                records[key] = DefinitionRecord.model_validate(raw)
            except pydantic.ValidationError as e:
                raise ValueError(f"Invalid API definition '{key}': {e}") from e

        imported = 0
        for key, record in records.items():
            if key in self._definitions and not overwrite:
                continue
            self.register(key, record.model_dump())
            imported += 1
        logger.info(f"Imported {imported} of {len(records)} API definitions")
        return imported

    # -- persistence -----------------------------------------------------

    async def load(self) -> int:
        """Pull persisted definitions into the store and mark it ready."""
        if self.persistence is None:
            self._ready = True
            return 0
        records = await self.persistence.load()
        imported = self.import_apis(records or {}, overwrite=True)
        self._ready = True
        return imported

    async def save(self) -> bool:
        if self.persistence is None:
            return False
        return await self.persistence.save(self.export_apis())

    async def purge_persisted(self) -> bool:
        if self.persistence is None:
            return False
        return await self.persistence.delete()

    async def wait_for_ready(self, timeout_ms: int = 10000) -> bool:
        """Wait until persisted definitions are loaded.

        Returns False on timeout. A failing load propagates; the next call
        starts a fresh load.
        """
        if self._ready:
            return True
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self.load())

        task = self._load_task
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.error(f"Definition store not ready after {timeout_ms}ms")
            return False
        except Exception:
            if self._load_task is task:
                self._load_task = None
            raise
        return self._ready
