"""
双后端（签名文件 + 活动存储）协调层

- 写：先写签名文件（更容易出现 I/O 失败），再写活动存储；
  文件写成功但活动存储失败时抛出 WriteError，两侧保持当前（可能不一致的）状态，不回滚
- 读：活动存储为权威来源，缺失即空 Map
- 删：先删文件再删活动记录，任一侧缺失都视为成功（幂等）
- 列表：活动存储列表（常规查询）与文件列表（活动存储尚未填充时，例如批量导入默认配置）
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from verifiedconfig.domain.tree import TreeMap, validate_config_name
from verifiedconfig.infrastructure.config.settings import StorageSettings
from verifiedconfig.infrastructure.storage import tree_codec
from verifiedconfig.infrastructure.storage.active_store import (
    ActiveStore,
    SqliteActiveStore,
)
from verifiedconfig.infrastructure.storage.signed_store import SignedStore
from verifiedconfig.shared.exceptions import IntegrityError, WriteError

logger = logging.getLogger(__name__)


class VerifiedStorage:
    def __init__(self, signed_store: SignedStore, active_store: ActiveStore):
        self.signed_store = signed_store
        self.active_store = active_store

    @classmethod
    def from_settings(
        cls, settings: StorageSettings, *, active_store: Optional[ActiveStore] = None
    ) -> "VerifiedStorage":
        if active_store is None:
            active_store = SqliteActiveStore(settings.active_db_path)
        return cls(SignedStore(settings), active_store)

    def write(self, name: str, tree: TreeMap) -> None:
        """
        编码并写入两个后端。

        Raises:
            EncodeError: 树无法编码（此时两个后端都未被修改）
            ConfigurationError / OSError: 签名文件写入失败（活动存储未被修改）
            WriteError: 签名文件已写入，但活动存储写入失败
        """
        validate_config_name(name)
        payload = tree_codec.encode(tree)
        self.signed_store.write(name, payload)
        try:
            self.active_store.put(name, payload)
        except Exception as e:
            logger.error(f"配置 {name} 的签名文件已写入，但活动存储写入失败: {str(e)}")
            raise WriteError(
                f"配置 {name} 写入不完整：签名文件已更新，活动存储未更新（{e}）"
            ) from e
        logger.info(f"配置 {name} 已保存")

    def read(self, name: str) -> TreeMap:
        payload = self.active_store.get(name)
        if payload is None:
            logger.debug(f"配置 {name} 未设置，返回空树")
            return {}
        return tree_codec.decode(payload)

    def read_file(self, name: str) -> TreeMap:
        """
        从签名文件读取配置树（校验签名）。

        Raises:
            IntegrityError: 签名不匹配
            DecodeError: 文件内容不是合法的 XML
        """
        payload = self.signed_store.read(name)
        if payload is None:
            return {}
        return tree_codec.decode(payload)

    def delete(self, name: str) -> None:
        removed_file = self.signed_store.delete(name)
        removed_row = self.active_store.delete(name)
        if removed_file or removed_row:
            logger.info(f"配置 {name} 已删除")
        else:
            logger.debug(f"配置 {name} 不存在，无需删除")

    def list_names(self, prefix: str = "") -> List[str]:
        return self.active_store.list_names(prefix)

    def list_file_names(self, prefix: str = "") -> List[str]:
        return self.signed_store.list_names(prefix)

    def write_raw(self, name: str, data: bytes) -> None:
        """
        跳过编解码，原样写入签名文件（仅文件，不写活动存储）。

        供外部批量安装模块默认配置时使用；之后可通过 import_file 同步到活动存储。
        """
        self.signed_store.write(name, data)
        logger.info(f"配置 {name} 原始内容已写入签名文件")

    def verify(self, name: str) -> bool:
        return self.signed_store.verify(name)

    def verify_all(self, prefix: str = "") -> Dict[str, bool]:
        return {name: self.verify(name) for name in self.list_file_names(prefix)}

    def import_file(self, name: str) -> bool:
        """
        将已校验的签名文件同步到活动存储。

        Returns:
            True 表示已导入，False 表示文件不存在

        Raises:
            IntegrityError: 签名不匹配（不导入，文件保持原样）
            DecodeError: 文件内容无法解码（不导入）
        """
        payload = self.signed_store.read(name)
        if payload is None:
            return False
        tree_codec.decode(payload)
        self.active_store.put(name, payload)
        logger.info(f"配置 {name} 已从签名文件导入活动存储")
        return True

    def import_files(self, prefix: str = "") -> List[str]:
        """
        批量导入签名文件到活动存储。

        任一文件校验失败即中止并抛出 IntegrityError；此前已导入的配置保持导入状态。
        """
        imported: List[str] = []
        for name in self.list_file_names(prefix):
            try:
                if self.import_file(name):
                    imported.append(name)
            except IntegrityError:
                logger.error(f"批量导入中止：配置 {name} 签名校验失败")
                raise
        return imported

    def close(self) -> None:
        self.active_store.close()
