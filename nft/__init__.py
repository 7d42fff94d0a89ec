"""
Layered Asset Registry - NFT Metadata

Rendering of stored asset fields into the canonical metadata JSON document.
"""

from .metadata import (
    MetadataBuilder,
    MetadataValidationError,
    merge_attributes,
    render,
    token_uri,
    decode_token_uri,
    validate_text,
    validate_attribute_fragment
)

__version__ = "1.0.0"

__all__ = [
    "MetadataBuilder",
    "MetadataValidationError",
    "merge_attributes",
    "render",
    "token_uri",
    "decode_token_uri",
    "validate_text",
    "validate_attribute_fragment"
]
