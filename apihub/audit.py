"""Audit logging for gateway requests."""

import json
import os
import time
from pathlib import Path
from typing import Any, Optional

import aiosqlite


def _get_db_path() -> Path:
    """Get database path, allowing override for tests."""
    return Path(os.getenv("APIHUB_AUDIT_DB_PATH", "/tmp/apihub/audit.db"))


async def init_audit_db() -> None:
    """Initialize audit database."""
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp REAL,
                endpoint TEXT,
                method TEXT,
                api_key TEXT,
                client_ip TEXT,
                params TEXT,
                status_code INTEGER,
                duration_ms REAL,
                error TEXT
            )
            """
        )
        await db.commit()


async def log_request(
    endpoint: str,
    method: str,
    client_ip: str,
    params: dict[str, Any],
    status_code: int,
    error: Optional[str] = None,
    api_key: Optional[str] = None,
    duration_ms: Optional[float] = None,
) -> None:
    """Log a gateway request."""
    db_path = _get_db_path()
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            INSERT INTO audit_log
               (timestamp, endpoint, method, api_key, client_ip, params,
                status_code, duration_ms, error)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                time.time(),
                endpoint,
                method,
                api_key,
                client_ip,
                json.dumps(params, default=str),
                status_code,
                duration_ms,
                error,
            ),
        )
        await db.commit()


async def get_recent_logs(limit: int = 100, api_key: Optional[str] = None) -> list[dict]:
    """Get recent audit log entries, newest first."""
    db_path = _get_db_path()
    query = """
        SELECT timestamp, endpoint, method, api_key, client_ip, status_code,
               duration_ms, error
           FROM audit_log
    """
    args: tuple = ()
    if api_key is not None:
        query += " WHERE api_key = ?"
        args = (api_key,)
    query += " ORDER BY id DESC LIMIT ?"

    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(query, args + (limit,))
        rows = await cursor.fetchall()
        return [
            {
                "timestamp": row[0],
                "endpoint": row[1],
                "method": row[2],
                "api_key": row[3],
                "client_ip": row[4],
                "status_code": row[5],
                "duration_ms": row[6],
                "error": row[7],
            }
            for row in rows
        ]
