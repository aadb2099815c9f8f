from __future__ import annotations

import pytest

from verifiedconfig.domain.tree import canonicalize
from verifiedconfig.infrastructure.storage.tree_codec import decode, encode
from verifiedconfig.shared.exceptions import DecodeError, EncodeError


def test_roundtrip_scalars_maps_and_multi_element_lists() -> None:
    tree = {
        "title": "Books",
        "enabled": True,
        "limit": 25,
        "toolbar": {"visible": False, "items": ["new", "edit", "delete"]},
        "roles": [{"id": "admin", "weight": 1}, {"id": "editor", "weight": 2}],
        "note": "中文 & <special> chars",
    }
    assert decode(encode(canonicalize(tree))) == canonicalize(tree)


def test_single_element_list_decodes_to_plain_entry() -> None:
    encoded = encode({"items": ["only"]})
    assert decode(encoded) == {"items": "only"}


def test_list_repeats_enclosing_tag() -> None:
    text = encode({"items": ["a", "b"]}).decode("utf-8")
    assert text.count("<items>") == 2
    assert "<config>" in text
    assert text.startswith("<?xml")


def test_output_is_pretty_printed() -> None:
    text = encode({"a": {"b": "1"}}).decode("utf-8")
    assert "\n  <a>\n    <b>1</b>\n  </a>\n" in text


def test_empty_tree_roundtrip() -> None:
    assert decode(encode({})) == {}


def test_empty_leaf_decodes_to_empty_string() -> None:
    assert decode(encode({"a": ""})) == {"a": ""}
    assert decode(encode({"a": {}})) == {"a": ""}


def test_attributes_surface_under_reserved_key_and_are_not_reemitted() -> None:
    text = '<?xml version="1.0"?><config><menu source="core"><item>a</item></menu></config>'
    tree = decode(text)
    assert tree == {"menu": {"#attributes": {"source": "core"}, "item": "a"}}

    reencoded = encode(tree).decode("utf-8")
    assert "source" not in reencoded
    assert "#attributes" not in reencoded


def test_decode_ignores_comments() -> None:
    text = "<config><!-- note --><a>1</a></config>"
    assert decode(text) == {"a": "1"}


def test_decode_preserves_leaf_whitespace() -> None:
    assert decode("<config><a>  padded </a></config>") == {"a": "  padded "}


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "<config><a></config>",
        "not xml at all",
        "<config><a>1</a>",
    ],
)
def test_decode_rejects_malformed_input(text: str) -> None:
    with pytest.raises(DecodeError):
        decode(text)


def test_encode_rejects_invalid_tag_names() -> None:
    with pytest.raises(EncodeError):
        encode({"1abc": "x"})
    with pytest.raises(EncodeError):
        encode({"has space": "x"})


def test_encode_rejects_non_map_root_and_uncanonicalized_values() -> None:
    with pytest.raises(EncodeError):
        encode(["a", "b"])  # type: ignore[arg-type]
    with pytest.raises(EncodeError):
        encode({"flag": True})  # type: ignore[dict-item]
