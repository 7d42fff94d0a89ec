"""
Unit tests for metadata rendering.
"""

import json

import pytest

from nft.metadata import (
    MetadataBuilder, MetadataValidationError, decode_token_uri, merge_attributes,
    render, token_uri, validate_attribute_fragment, validate_text
)
from registry.schema import AssetRecord


def make_record(**fields):
    defaults = dict(asset_id=1, base_reference="ipfs://base", name="Name", description="Desc")
    defaults.update(fields)
    return AssetRecord(**defaults)


class TestRender:
    """Test the canonical document layout."""

    def test_minimal_document(self):
        assert render(make_record()) == (
            '{"name": "Name","description": "Desc","image": "ipfs://base","attributes": []}'
        )

    def test_overlay_between_image_and_attributes(self):
        document = render(make_record(overlay_reference="ipfs://overlay"))
        assert document == (
            '{"name": "Name","description": "Desc","image": "ipfs://base",'
            '"overlay": "ipfs://overlay","attributes": []}'
        )

    def test_empty_overlay_is_omitted(self):
        assert '"overlay"' not in render(make_record(overlay_reference=""))

    def test_both_attribute_fragments(self):
        document = render(make_record(
            static_attributes='{"trait":"A"}', dynamic_attributes='{"trait":"B"}'
        ))
        assert document.endswith('"attributes": [{"trait":"A"},{"trait":"B"}]}')

    def test_only_static_fragment(self):
        document = render(make_record(static_attributes='{"trait":"A"}'))
        assert document.endswith('"attributes": [{"trait":"A"}]}')

    def test_only_dynamic_fragment(self):
        document = render(make_record(dynamic_attributes='{"trait":"B"}'))
        assert document.endswith('"attributes": [{"trait":"B"}]}')

    def test_valid_fragments_produce_parseable_json(self):
        document = render(make_record(
            overlay_reference="ipfs://overlay",
            static_attributes='{"trait_type":"Kind","value":"Fox"}',
            dynamic_attributes='{"trait_type":"Level","value":3}',
        ))
        parsed = json.loads(document)
        assert list(parsed) == ["name", "description", "image", "overlay", "attributes"]
        assert parsed["attributes"][1] == {"trait_type": "Level", "value": 3}

    def test_deterministic(self):
        record = make_record(static_attributes='{"a":1}', overlay_reference="ipfs://o")
        assert render(record) == render(record.model_copy())

    def test_no_escaping_is_performed(self):
        document = render(make_record(name='Say "hi"'))
        assert '"name": "Say "hi""' in document
        with pytest.raises(json.JSONDecodeError):
            json.loads(document)


class TestMergeAttributes:

    @pytest.mark.parametrize("static, dynamic, expected", [
        ("", "", ""),
        ("A", "", "A"),
        ("", "B", "B"),
        ("A", "B", "A,B"),
    ])
    def test_merge(self, static, dynamic, expected):
        assert merge_attributes(static, dynamic) == expected


class TestMetadataBuilder:

    def test_order_is_insertion_order(self):
        document = (
            MetadataBuilder()
            .add_string("b", "2")
            .add_string("a", "1")
            .build()
        )
        assert document == '{"b": "2","a": "1"}'

    def test_optional_entry_omitted_when_empty(self):
        document = MetadataBuilder().add_string("x", "", omit_empty=True).add_string("y", "").build()
        assert document == '{"y": ""}'

    def test_array_skips_empty_fragments(self):
        assert MetadataBuilder().add_array("k", ["", "1", "", "2"]).build() == '{"k": [1,2]}'


class TestTokenUri:

    def test_round_trip(self):
        document = render(make_record())
        uri = token_uri(document)
        assert uri.startswith("data:application/json;base64,")
        assert decode_token_uri(uri) == document

    def test_decode_rejects_other_uris(self):
        with pytest.raises(MetadataValidationError):
            decode_token_uri("ipfs://base")


class TestValidation:

    @pytest.mark.parametrize("value", ["Name", "", "ipfs://Qm123", "Ünïcode ✓"])
    def test_text_accepted(self, value):
        validate_text(value)

    @pytest.mark.parametrize("value", ['quote"d', "back\\slash", "new\nline", "tab\t"])
    def test_text_rejected(self, value):
        with pytest.raises(MetadataValidationError):
            validate_text(value, "name")

    @pytest.mark.parametrize("fragment", [
        "", '{"trait":"A"}', '{"a":1},{"b":2}', '"plain"', "1, 2"
    ])
    def test_fragment_accepted(self, fragment):
        validate_attribute_fragment(fragment)

    @pytest.mark.parametrize("fragment", [
        '{"trait":"A"', '{"a":1},', "trait", '{"a":1}]'
    ])
    def test_fragment_rejected(self, fragment):
        with pytest.raises(MetadataValidationError):
            validate_attribute_fragment(fragment, "static_attributes")
