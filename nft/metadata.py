"""
Layered Asset Registry - NFT Metadata Serialization

This module renders the stored fields of an asset record into the canonical
metadata JSON document:

    {"name": "N","description": "D","image": "B","overlay": "O","attributes": [S,D]}

Entries are written as ``"key": value`` and joined by a bare comma. The
``overlay`` entry is omitted when no overlay is set, and the attribute array
body is the static fragment followed by the dynamic fragment, comma-joined
only when both are present.

Stored strings are embedded verbatim. Nothing is escaped, so a name containing
a double quote, or an attribute fragment that is not valid JSON, yields an
invalid document. Callers that need a guarantee can check values beforehand
with validate_text() and validate_attribute_fragment().
"""

import base64
import json
from typing import TYPE_CHECKING, List, Tuple

if TYPE_CHECKING:
    from registry.schema import AssetRecord


TOKEN_URI_PREFIX = "data:application/json;base64,"


class MetadataValidationError(ValueError):
    """A value cannot be embedded in the metadata document as-is."""
    pass


class MetadataBuilder:
    """Ordered key/value emitter for the metadata document."""

    def __init__(self):
        self._entries: List[Tuple[str, str]] = []

    def add_string(self, key: str, value: str, omit_empty: bool = False) -> "MetadataBuilder":
        """Add a quoted string entry; optional entries are skipped when empty."""
        if omit_empty and not value:
            return self
        self._entries.append((key, f'"{value}"'))
        return self

    def add_array(self, key: str, fragments: List[str]) -> "MetadataBuilder":
        """Add an array entry whose body is the non-empty fragments comma-joined."""
        self._entries.append((key, f"[{merge_fragments(fragments)}]"))
        return self

    def build(self) -> str:
        return "{" + ",".join(f'"{key}": {value}' for key, value in self._entries) + "}"


def merge_fragments(fragments: List[str]) -> str:
    return ",".join(fragment for fragment in fragments if fragment)


def merge_attributes(static_attributes: str, dynamic_attributes: str) -> str:
    """Static fragment then dynamic fragment, comma-joined only if both are set."""
    return merge_fragments([static_attributes, dynamic_attributes])


def render(record: "AssetRecord") -> str:
    """Render a record into its canonical metadata JSON document."""
    return (
        MetadataBuilder()
        .add_string("name", record.name)
        .add_string("description", record.description)
        .add_string("image", record.base_reference)
        .add_string("overlay", record.overlay_reference, omit_empty=True)
        .add_array("attributes", [record.static_attributes, record.dynamic_attributes])
        .build()
    )


def token_uri(document: str) -> str:
    """Wrap a metadata document in a base64 data URI."""
    encoded = base64.b64encode(document.encode("utf-8")).decode("ascii")
    return TOKEN_URI_PREFIX + encoded


def decode_token_uri(uri: str) -> str:
    """Inverse of token_uri()."""
    if not uri.startswith(TOKEN_URI_PREFIX):
        raise MetadataValidationError(f"Not a metadata data URI: {uri[:40]}")
    return base64.b64decode(uri[len(TOKEN_URI_PREFIX):]).decode("utf-8")


def validate_text(value: str, field_name: str = "value") -> None:
    """
    Check that a string can be placed between JSON quotes unescaped.

    Raises:
        MetadataValidationError: If the value contains quotes, backslashes or
            control characters
    """
    if json.dumps(value, ensure_ascii=False)[1:-1] != value:
        raise MetadataValidationError(
            f"{field_name} contains characters that require JSON escaping"
        )


def validate_attribute_fragment(fragment: str, field_name: str = "attributes") -> None:
    """
    Check that a fragment is a comma-separated list of JSON values.

    The empty fragment is valid and contributes nothing to the array.

    Raises:
        MetadataValidationError: If the fragment would corrupt the array
    """
    if not fragment:
        return
    try:
        json.loads(f"[{fragment}]")
    except json.JSONDecodeError as e:
        raise MetadataValidationError(f"{field_name} is not a valid JSON fragment: {e.msg}")
