"""
配置树模型

配置树由三种节点组成（显式的标签联合，不依赖数字键推断数组/对象）：
- Leaf：str
- Map：dict[str, TreeNode]（保持插入顺序）
- List：list[TreeNode]

存储前的规范化规则：
- True -> "1"，False -> "0"
- None -> ""
- 其它标量（int / float / Decimal ...）-> str(value)
- tuple -> list
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Mapping, Optional, Union

from verifiedconfig.shared.constants import ATTRIBUTES_KEY, FALSE_VALUE, TRUE_VALUE

TreeNode = Union[str, Dict[str, "TreeNode"], List["TreeNode"]]
TreeMap = Dict[str, TreeNode]

_CONFIG_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*$")


def validate_config_name(name: object) -> str:
    """
    校验配置名（点分段标识，例如 ``book.admin``）。

    Returns:
        原样返回合法的配置名

    Raises:
        ValueError: 配置名为空或包含非法字符（例如路径分隔符）
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"配置名必须是非空字符串：{name!r}")
    if not _CONFIG_NAME_RE.match(name):
        raise ValueError(f"配置名不合法：{name!r}（仅允许字母、数字、_、- 与点分段）")
    return name


def canonicalize(value: Any) -> TreeNode:
    """Recursively convert a Python value into a canonical TreeNode."""
    # bool 必须先于 int 判断（bool 是 int 的子类）
    if isinstance(value, bool):
        return TRUE_VALUE if value else FALSE_VALUE
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        raise TypeError(f"配置值不支持 bytes，请先解码为字符串：{value!r:.64}")
    return str(value)


def split_path(path: str) -> List[str]:
    """
    将点分路径拆分为键序列。

    Raises:
        ValueError: 路径为空或包含空段（例如 ``a..b``）
    """
    if not isinstance(path, str) or not path:
        raise ValueError(f"路径必须是非空字符串：{path!r}")
    parts = path.split(".")
    if any(not part for part in parts):
        raise ValueError(f"路径包含空段：{path!r}")
    return parts


def _lookup_keys(path: object) -> Optional[List[str]]:
    # 空段永远不可能被存储，读取与删除路径上视为“不存在”
    if not isinstance(path, str) or not path:
        return None
    parts = path.split(".")
    if any(not part for part in parts):
        return None
    return parts


def ensure_no_reserved_keys(path: str, value: Any) -> None:
    """
    拒绝包含保留键（`#attributes`）的路径或值。

    保留键在编码时不会输出，若允许写入会在 save() 后静默丢失。

    Raises:
        ValueError: 路径段或值中的某个 Map 键为保留键
    """
    if ATTRIBUTES_KEY in split_path(path):
        raise ValueError(f"路径不能包含保留键 {ATTRIBUTES_KEY}：{path!r}")
    if _has_reserved_key(value):
        raise ValueError(f"配置值不能包含保留键 {ATTRIBUTES_KEY}：{path!r}")


def _has_reserved_key(value: Any) -> bool:
    if isinstance(value, Mapping):
        return any(str(k) == ATTRIBUTES_KEY or _has_reserved_key(v) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return any(_has_reserved_key(item) for item in value)
    return False


def get_nested(tree: TreeMap, path: str) -> Optional[TreeNode]:
    """Walk nested Maps along `path`; any missing or empty segment yields None."""
    keys = _lookup_keys(path)
    if keys is None:
        return None
    node: TreeNode = tree
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return copy.deepcopy(node)


def set_nested(tree: TreeMap, path: str, value: TreeNode) -> None:
    """
    在 `path` 处写入 value，沿途缺失的中间节点创建为 Map。

    中间节点若不是 Map（Leaf / List），会被替换为新的 Map。
    """
    keys = split_path(path)
    node = tree
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def clear_nested(tree: TreeMap, path: str) -> bool:
    """
    删除 `path` 处的叶子或子树。

    Returns:
        True 表示确实删除了内容，False 表示路径不存在（无操作）
    """
    keys = _lookup_keys(path)
    if keys is None:
        return False
    node: TreeNode = tree
    for key in keys[:-1]:
        if not isinstance(node, dict) or key not in node:
            return False
        node = node[key]
    if not isinstance(node, dict) or keys[-1] not in node:
        return False
    del node[keys[-1]]
    return True
