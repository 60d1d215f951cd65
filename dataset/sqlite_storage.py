"""
SQLite-backed dataset store.
One database file per session: <storage_dir>/datasets/<session_name>.db
"""

import json
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List

from crawler.core import logger
from dataset.storage import DatasetStore
from extraction.models import PageRecord


class SQLiteDatasetStore(DatasetStore):

    def __init__(self, storage_dir):
        self._datasets_dir = Path(storage_dir) / "datasets"
        self._write_lock = Lock()
        self._initialized = set()

    def get_db_path(self, session_name: str) -> Path:
        if not session_name or re.search(r"[^\w]", session_name):
            raise ValueError(f"invalid session name: {session_name!r}")
        return self._datasets_dir / f"{session_name}.db"

    def get_connection(self, session_name: str) -> sqlite3.Connection:
        """
        Create and return a connection to the session database, creating the table on first use.
        """
        db_path = self.get_db_path(session_name)
        if session_name not in self._initialized:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(db_path)
        if session_name not in self._initialized:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                url TEXT NOT NULL,
                data TEXT NOT NULL,       -- JSON object, export keys
                created_at TEXT NOT NULL  -- ISO8601 UTC
            );
            """)
            conn.commit()
            self._initialized.add(session_name)
        return conn

    def append(self, session_name: str, record: PageRecord) -> None:
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._write_lock:
            conn = self.get_connection(session_name)
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO items (url, data, created_at) VALUES (?, ?, ?)",
                        (record.url, payload, timestamp),
                    )
            finally:
                conn.close()
        logger.debug(f"[DATASET] {session_name}: stored {record.url}")

    def read_items(self, session_name: str) -> List[Dict[str, Any]]:
        if not self.get_db_path(session_name).exists():
            return []
        conn = self.get_connection(session_name)
        try:
            rows = conn.execute("SELECT data FROM items ORDER BY id").fetchall()
        finally:
            conn.close()
        return [json.loads(row[0]) for row in rows]

    def count(self, session_name: str) -> int:
        if not self.get_db_path(session_name).exists():
            return 0
        conn = self.get_connection(session_name)
        try:
            return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
        finally:
            conn.close()

    def reset(self, session_name: str) -> None:
        """
        Drop a previous crawl's rows so a fresh crawl starts from an empty dataset.
        """
        if not self.get_db_path(session_name).exists():
            return
        with self._write_lock:
            conn = self.get_connection(session_name)
            try:
                with conn:
                    conn.execute("DELETE FROM items")
            finally:
                conn.close()
        logger.info(f"[DATASET] {session_name}: cleared previous crawl data")
