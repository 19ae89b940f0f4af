"""
Parsers and converters used by the import pipeline.

Currently this subpackage exposes ``convert_html_to_blocks`` from
:mod:`blogger_import.parsers.block_converter` and the block markup helpers
from :mod:`blogger_import.parsers.block_serializer`.
"""

from .block_converter import LightboxRule, convert_html_to_blocks
from .block_serializer import blocks_from_markup, parse_block_markup, serialize_blocks

__all__ = [
    "LightboxRule",
    "blocks_from_markup",
    "convert_html_to_blocks",
    "parse_block_markup",
    "serialize_blocks",
]
