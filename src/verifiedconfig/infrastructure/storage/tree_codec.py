"""
配置树 <-> XML 文本编解码

编码规则：
- 根元素固定为 <config>，输出带 XML 声明、UTF-8、缩进（便于 diff）
- Leaf：元素文本
- Map：每个键一个同名子元素
- List：每个元素输出为与所在键同名的兄弟元素（不保留下标，只保留“重复”）
- `#attributes` 键不输出（属性只读）

解码规则：
- 没有子元素的元素 -> Leaf（文本，空则为 ""）
- 有子元素的元素 -> Map；同名子元素出现多次时折叠为 List，只出现一次时为普通 Map 项
- 产生 Map 的元素若带属性，属性放在 `#attributes` 下
- 根元素总是解码为 Map

已知的有损情况（保持格式兼容，不做“修复”）：
- 单元素 List 解码后变成普通 Map 项：decode(encode({"k": ["x"]})) == {"k": "x"}
- 空 List 不输出任何元素，键消失
- 空 Map 输出为空元素，解码为 ""
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Union

from lxml import etree

from verifiedconfig.domain.tree import TreeMap, TreeNode
from verifiedconfig.shared.constants import ATTRIBUTES_KEY, ROOT_TAG
from verifiedconfig.shared.exceptions import DecodeError, EncodeError

logger = logging.getLogger(__name__)


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def _new_child(parent: etree._Element, tag: str) -> etree._Element:
    try:
        return etree.SubElement(parent, tag)
    except ValueError as e:
        raise EncodeError(f"配置键无法作为 XML 标签名：{tag!r}") from e


def _append_value(parent: etree._Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        # 嵌套 List 直接展开为同一串兄弟元素
        for item in value:
            _append_value(parent, tag, item)
        return

    element = _new_child(parent, tag)
    if isinstance(value, dict):
        _fill_map(element, value)
    elif isinstance(value, str):
        try:
            element.text = value
        except ValueError as e:
            raise EncodeError(f"配置值包含 XML 不允许的字符：{tag}") from e
    else:
        raise EncodeError(
            f"配置值类型不支持：{type(value).__name__}（请先规范化为字符串）"
        )


def _fill_map(element: etree._Element, data: Mapping[str, Any]) -> None:
    for key, value in data.items():
        if key == ATTRIBUTES_KEY:
            continue
        _append_value(element, str(key), value)


def encode(tree: TreeMap) -> bytes:
    """
    将配置树编码为 XML 字节（UTF-8）。

    Raises:
        EncodeError: 根节点不是 Map、键不是合法标签名或值类型不支持
    """
    if not isinstance(tree, dict):
        raise EncodeError(f"配置树根节点必须是 Map（dict），实际为 {type(tree).__name__}")

    root = etree.Element(ROOT_TAG)
    _fill_map(root, tree)
    return etree.tostring(
        root, pretty_print=True, xml_declaration=True, encoding="UTF-8"
    )


def _child_elements(element: etree._Element) -> List[etree._Element]:
    return [child for child in element if isinstance(child.tag, str)]


def _decode_map(element: etree._Element, children: List[etree._Element]) -> TreeMap:
    groups: Dict[str, List[TreeNode]] = {}
    for child in children:
        groups.setdefault(str(child.tag), []).append(_decode_element(child))

    result: TreeMap = {}
    if element.attrib:
        result[ATTRIBUTES_KEY] = {str(k): str(v) for k, v in element.attrib.items()}
    for tag, values in groups.items():
        result[tag] = values[0] if len(values) == 1 else values
    return result


def _decode_element(element: etree._Element) -> TreeNode:
    children = _child_elements(element)
    if not children:
        return element.text or ""
    return _decode_map(element, children)


def decode(data: Union[bytes, str]) -> TreeMap:
    """
    将 XML 文本解码为配置树（根节点总是 Map）。

    Raises:
        DecodeError: 文本不是格式良好的 XML（不做部分解码）
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data or not data.strip():
        raise DecodeError("配置文本为空，无法解码")

    try:
        root = etree.fromstring(data, parser=_make_parser())
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"配置文本不是合法的 XML：{e}") from e

    return _decode_map(root, _child_elements(root))
