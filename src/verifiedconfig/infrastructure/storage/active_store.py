"""
活动存储（可查询）

保存每个配置名最新的序列化树（name -> payload），是运行时读取的权威来源。
默认实现基于 SQLite，表结构：

    CREATE TABLE config (name TEXT PRIMARY KEY, data BLOB NOT NULL)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path
import sqlite3
from typing import List, Optional, Union

from verifiedconfig.domain.tree import validate_config_name
from verifiedconfig.shared.constants import ACTIVE_TABLE
from verifiedconfig.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ActiveStore(ABC):
    """Queryable per-name record store (name -> serialized payload)."""

    @abstractmethod
    def put(self, name: str, payload: bytes) -> None:
        """Insert or overwrite the record for `name`."""

    @abstractmethod
    def get(self, name: str) -> Optional[bytes]:
        """Return the stored payload, or None when `name` was never written."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove the record; returns False when nothing was stored."""

    @abstractmethod
    def list_names(self, prefix: str = "") -> List[str]:
        """Return stored names starting with `prefix` (literal match), sorted."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "ActiveStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SqliteActiveStore(ActiveStore):
    def __init__(self, db_path: Union[Path, str]):
        self.db_path = db_path
        if db_path != ":memory:":
            try:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"活动存储目录不可写：{db_path}（{e}）") from e
        try:
            self._conn = sqlite3.connect(str(db_path))
        except sqlite3.Error as e:
            raise ConfigurationError(f"无法打开活动存储：{db_path}（{e}）") from e
        self.ensure_schema()

    def ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {ACTIVE_TABLE} ("
                "name TEXT PRIMARY KEY, data BLOB NOT NULL)"
            )

    def put(self, name: str, payload: bytes) -> None:
        validate_config_name(name)
        with self._conn:
            self._conn.execute(
                f"INSERT INTO {ACTIVE_TABLE} (name, data) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET data = excluded.data",
                (name, sqlite3.Binary(payload)),
            )
        logger.debug(f"活动存储已更新: {name}")

    def get(self, name: str) -> Optional[bytes]:
        validate_config_name(name)
        row = self._conn.execute(
            f"SELECT data FROM {ACTIVE_TABLE} WHERE name = ?", (name,)
        ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def delete(self, name: str) -> bool:
        validate_config_name(name)
        with self._conn:
            cursor = self._conn.execute(
                f"DELETE FROM {ACTIVE_TABLE} WHERE name = ?", (name,)
            )
        return cursor.rowcount > 0

    def list_names(self, prefix: str = "") -> List[str]:
        # substr 比较而不是 LIKE：% 与 _ 不作为通配符
        rows = self._conn.execute(
            f"SELECT name FROM {ACTIVE_TABLE} "
            "WHERE substr(name, 1, length(?)) = ? ORDER BY name",
            (prefix, prefix),
        ).fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        self._conn.close()
