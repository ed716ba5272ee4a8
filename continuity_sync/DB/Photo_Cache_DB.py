# Photo_Cache_DB.py
# Description: SQLite-backed local binary cache for continuity photos and documents.
#
"""
Photo_Cache_DB.py
-----------------

Keeps the raw bytes of photos (and other binary assets) on the device, keyed by the
asset's identifier. The asset upload pipeline reads from here before falling back to an
inline data URI, and a pull stores freshly downloaded photos here so later uploads and
renders never go back to the network for them.

Thread-safe via one connection per thread (`threading.local`).
"""
# Imports
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union, List, Dict, Any
#
# Third-Party Libraries
from loguru import logger
#
# Local Imports
#
########################################################################################################################
#
# Functions:

class PhotoCacheDBError(Exception):
    """Base exception for photo cache errors."""
    pass


class PhotoCacheDB:
    _CURRENT_SCHEMA_VERSION = 1

    _TABLES_SQL_V1 = """
    CREATE TABLE IF NOT EXISTS asset_blobs (
        asset_id TEXT PRIMARY KEY NOT NULL,
        content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
        data BLOB NOT NULL,
        byte_size INTEGER NOT NULL,
        stored_at TEXT NOT NULL
    );

    PRAGMA user_version = 1;
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Args:
            db_path: Path to the SQLite database file, or ':memory:'.
        """
        self.is_memory_db = str(db_path) == ':memory:'
        if self.is_memory_db:
            self.db_path_str = ':memory:'
        else:
            resolved = Path(db_path).expanduser().resolve()
            resolved.parent.mkdir(parents=True, exist_ok=True)
            self.db_path_str = str(resolved)
        self._local = threading.local()
        self._initialize_schema()
        logger.debug(f"PhotoCacheDB ready at {self.db_path_str}")

    # --- Connection Management ---
    def get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            try:
                conn = sqlite3.connect(self.db_path_str, check_same_thread=False, timeout=10)
                conn.row_factory = sqlite3.Row
                if not self.is_memory_db:
                    conn.execute("PRAGMA journal_mode=WAL;")
                self._local.conn = conn
            except sqlite3.Error as e:
                raise PhotoCacheDBError(f"Failed to connect to photo cache at {self.db_path_str}: {e}") from e
        return conn

    def close_connection(self):
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            self._local.conn = None
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing photo cache connection: {e}")

    @contextmanager
    def transaction(self):
        conn = self.get_connection()
        in_outer = conn.in_transaction
        try:
            if not in_outer:
                conn.execute("BEGIN")
            yield conn
            if not in_outer:
                conn.commit()
        except Exception as e:
            if not in_outer:
                logger.error(f"Photo cache transaction failed, rolling back: {type(e).__name__} - {e}")
                conn.rollback()
            raise

    def _initialize_schema(self):
        conn = self.get_connection()
        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version == 0:
                conn.executescript(self._TABLES_SQL_V1)
                version = conn.execute("PRAGMA user_version").fetchone()[0]
        except sqlite3.Error as e:
            raise PhotoCacheDBError(f"Photo cache schema initialization failed: {e}") from e
        if version != self._CURRENT_SCHEMA_VERSION:
            raise PhotoCacheDBError(
                f"Photo cache schema version {version} does not match expected {self._CURRENT_SCHEMA_VERSION}"
            )

    # --- Cache API ---
    def get_binary(self, asset_id: str) -> Optional[bytes]:
        """Returns the cached bytes for `asset_id`, or None when nothing is cached."""
        try:
            row = self.get_connection().execute(
                "SELECT data FROM asset_blobs WHERE asset_id = ?", (asset_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PhotoCacheDBError(f"Failed to read asset {asset_id}: {e}") from e
        return bytes(row["data"]) if row else None

    def get_content_type(self, asset_id: str) -> Optional[str]:
        row = self.get_connection().execute(
            "SELECT content_type FROM asset_blobs WHERE asset_id = ?", (asset_id,)
        ).fetchone()
        return row["content_type"] if row else None

    def save_binary(self, asset_id: str, data: bytes, content_type: str = 'application/octet-stream'):
        if not asset_id:
            raise ValueError("asset_id is required")
        stored_at = datetime.now(timezone.utc).isoformat()
        try:
            with self.transaction() as conn:
                conn.execute(
                    """INSERT INTO asset_blobs (asset_id, content_type, data, byte_size, stored_at)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(asset_id) DO UPDATE SET
                           content_type = excluded.content_type,
                           data = excluded.data,
                           byte_size = excluded.byte_size,
                           stored_at = excluded.stored_at""",
                    (asset_id, content_type, sqlite3.Binary(data), len(data), stored_at),
                )
        except sqlite3.Error as e:
            raise PhotoCacheDBError(f"Failed to store asset {asset_id}: {e}") from e
        logger.debug(f"Cached asset {asset_id} ({len(data)} bytes, {content_type})")

    def delete_binary(self, asset_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM asset_blobs WHERE asset_id = ?", (asset_id,))
        return cursor.rowcount > 0

    def list_assets(self) -> List[Dict[str, Any]]:
        rows = self.get_connection().execute(
            "SELECT asset_id, content_type, byte_size, stored_at FROM asset_blobs ORDER BY stored_at"
        ).fetchall()
        return [dict(row) for row in rows]

#
# End of Photo_Cache_DB.py
########################################################################################################################
