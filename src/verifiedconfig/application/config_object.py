"""
配置对象（点分路径访问）

用法：
```python
config("book.admin").set("toolbar.visible", True).set("title", "Books").save()
config("book.admin").get("toolbar.visible")  # -> "1"
```

所有修改都只发生在内存中，直到调用 save()。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
from functools import lru_cache
import logging
from typing import Any, Callable, Optional

from verifiedconfig.domain.tree import (
    TreeMap,
    TreeNode,
    canonicalize,
    clear_nested,
    ensure_no_reserved_keys,
    get_nested,
    set_nested,
    validate_config_name,
)
from verifiedconfig.infrastructure.config.settings import StorageSettings
from verifiedconfig.infrastructure.storage.verified_storage import VerifiedStorage

logger = logging.getLogger(__name__)


class ConfigObject(ABC):
    """Capability interface shared by every configuration object implementation."""

    def __init__(self, name: str):
        self._name = validate_config_name(name)

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def get(self, path: Optional[str] = None) -> Optional[TreeNode]:
        ...

    @abstractmethod
    def set(self, path: str, value: Any) -> "ConfigObject":
        ...

    @abstractmethod
    def clear(self, path: str) -> "ConfigObject":
        ...

    @abstractmethod
    def save(self) -> "ConfigObject":
        ...

    @abstractmethod
    def delete(self) -> "ConfigObject":
        ...

    @property
    @abstractmethod
    def is_dirty(self) -> bool:
        ...


class VerifiedConfigObject(ConfigObject):
    """
    Config object persisted through VerifiedStorage.

    The tree is loaded lazily on first access; an unset name materializes as {}.
    """

    def __init__(self, name: str, storage: VerifiedStorage):
        super().__init__(name)
        self._storage = storage
        self._data: Optional[TreeMap] = None
        self._dirty = False

    def _tree(self) -> TreeMap:
        if self._data is None:
            self._data = self._storage.read(self._name)
            logger.debug(f"配置 {self._name} 已加载")
        return self._data

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def get(self, path: Optional[str] = None) -> Optional[TreeNode]:
        """
        获取配置值。

        Args:
            path: 点分路径（如 'toolbar.visible'）；为 None 时返回整棵树

        Returns:
            值的副本；路径任一段缺失时返回 None（不抛异常）
        """
        tree = self._tree()
        if path is None:
            return copy.deepcopy(tree)
        return get_nested(tree, path)

    def set(self, path: str, value: Any) -> "VerifiedConfigObject":
        ensure_no_reserved_keys(path, value)
        set_nested(self._tree(), path, canonicalize(value))
        self._dirty = True
        return self

    def clear(self, path: str) -> "VerifiedConfigObject":
        if clear_nested(self._tree(), path):
            self._dirty = True
        return self

    def save(self) -> "VerifiedConfigObject":
        self._storage.write(self._name, self._tree())
        self._dirty = False
        return self

    def delete(self) -> "VerifiedConfigObject":
        self._storage.delete(self._name)
        self._data = {}
        self._dirty = False
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, dirty={self._dirty})"


ConfigFactory = Callable[[str, VerifiedStorage], ConfigObject]


@lru_cache(maxsize=1)
def get_default_storage() -> VerifiedStorage:
    """
    进程级默认存储（基于环境变量构建一次）。

    Note:
        - 测试或重新配置时，可调用 `get_default_storage.cache_clear()` 后再调用本函数。
    """
    settings = StorageSettings.from_env()
    logger.debug(f"使用存储根目录: {settings.base_dir}")
    return VerifiedStorage.from_settings(settings)


def config(
    name: str,
    *,
    storage: Optional[VerifiedStorage] = None,
    factory: ConfigFactory = VerifiedConfigObject,
) -> ConfigObject:
    """
    获取配置对象（唯一的构造入口）。

    Args:
        name: 配置名，如 'book.admin'
        storage: 使用的存储；默认使用进程级 get_default_storage()
        factory: 配置对象实现（类或可调用对象），默认 VerifiedConfigObject
    """
    return factory(name, storage if storage is not None else get_default_storage())
