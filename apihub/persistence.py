"""Persistence collaborators for the definition catalogue."""

import copy
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional, Protocol

import aiosqlite

logger = logging.getLogger(__name__)

Records = dict[str, dict[str, Any]]


class DefinitionPersistence(Protocol):
    async def save(self, records: Records) -> bool: ...

    async def load(self) -> Records: ...

    async def delete(self) -> bool: ...


class MemoryPersistence:
    """Keeps the last saved snapshot in memory."""

    def __init__(self, records: Optional[Records] = None):
        self.records: Records = copy.deepcopy(records) if records else {}
        self.save_count = 0

    async def save(self, records: Records) -> bool:
        self.records = copy.deepcopy(records)
        self.save_count += 1
        return True

    async def load(self) -> Records:
        return copy.deepcopy(self.records)

    async def delete(self) -> bool:
        self.records = {}
        return True


def _get_db_path() -> Path:
    """Get database path, allowing override for tests."""
    return Path(os.getenv("APIHUB_DB_PATH", "/tmp/apihub/definitions.db"))


class SqlitePersistence:
    """Stores one JSON record per definition key in SQLite."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path) if db_path else _get_db_path()
        self._initialized = False

    async def _init_db(self, db: aiosqlite.Connection) -> None:
        if self._initialized:
            return
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS api_definitions (
                key TEXT PRIMARY KEY,
                record TEXT NOT NULL,
                updated_at REAL
            )
            """
        )
        await db.commit()
        self._initialized = True

    async def save(self, records: Records) -> bool:
        """Replace the stored catalogue with ``records``."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        now = time.time()
        async with aiosqlite.connect(self.db_path) as db:
            await self._init_db(db)
            await db.execute("DELETE FROM api_definitions")
            await db.executemany(
                "INSERT INTO api_definitions (key, record, updated_at) VALUES (?, ?, ?)",
                [(key, json.dumps(record), now) for key, record in records.items()],
            )
            await db.commit()
        logger.info(f"Saved {len(records)} API definitions to {self.db_path}")
        return True

    async def load(self) -> Records:
        if not self.db_path.exists():
            return {}
        async with aiosqlite.connect(self.db_path) as db:
            await self._init_db(db)
            cursor = await db.execute(
                "SELECT key, record FROM api_definitions ORDER BY rowid"
            )
            rows = await cursor.fetchall()

        records: Records = {}
        for key, raw in rows:
            try:
                records[key] = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.error(f"Skipping unreadable definition '{key}': {e}")
        logger.info(f"Loaded {len(records)} API definitions from {self.db_path}")
        return records

    async def delete(self) -> bool:
        if not self.db_path.exists():
            return True
        async with aiosqlite.connect(self.db_path) as db:
            await self._init_db(db)
            await db.execute("DELETE FROM api_definitions")
            await db.commit()
        return True
