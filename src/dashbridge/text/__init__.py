"""
Text Preparation

Turns raw client text into speech-safe chunks for the synthesis bridge.
"""

from .prepare import (
    ALLOWED_PUNCTUATION,
    TextPolicy,
    TextPreparer,
    chunk_text,
    is_allowed_char,
    prepare_text,
    sanitize_text,
    sanitize_whitelist,
)
from .markdown import markdown_to_plain_text

__all__ = [
    "ALLOWED_PUNCTUATION",
    "TextPolicy",
    "TextPreparer",
    "chunk_text",
    "is_allowed_char",
    "markdown_to_plain_text",
    "prepare_text",
    "sanitize_text",
    "sanitize_whitelist",
]
