"""
Speech Text Preparation

Normalizes and sanitizes client text before it is sent to the synthesis
upstream, then splits it into append-sized chunks. Everything here is pure.

Whitelist policy, in order:
    1. CRLF / CR become LF
    2. NFKC normalization (full-width forms collapse to ASCII)
    3. every Unicode White_Space character except LF becomes a space
    4. keep only letters, digits, space, LF and the comma / period variants;
       combining marks survive when attached to a kept letter or digit
    5. runs of spaces collapse to one
    6. three or more LFs collapse to two
    7. strip
"""

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum

from .markdown import markdown_to_plain_text

COMMAS = frozenset({",", "，", "、"})
PERIODS = frozenset({".", "．", "。"})
ALLOWED_PUNCTUATION = COMMAS | PERIODS

DEFAULT_CHUNK_THRESHOLD = 100

_LINE_ENDINGS = re.compile(r"\r\n?")
_SPACE_RUNS = re.compile(r" {2,}")
_BLANK_LINES = re.compile(r"\n{3,}")

# Information separators: str.isspace() is true for them, White_Space is not
_SEPARATOR_CONTROLS = frozenset("\x1c\x1d\x1e\x1f")


class TextPolicy(str, Enum):
    """Sanitization policy applied before chunking."""

    WHITELIST = "whitelist"
    MARKDOWN = "markdown"


def normalize_line_endings(text: str) -> str:
    return _LINE_ENDINGS.sub("\n", text)


def is_whitespace(char: str) -> bool:
    """Unicode White_Space. ``str.isspace`` also matches U+001C..U+001F."""
    return char.isspace() and char not in _SEPARATOR_CONTROLS


def _is_word_char(char: str) -> bool:
    return unicodedata.category(char)[0] in ("L", "N", "M")


def is_allowed_char(char: str) -> bool:
    """
    Letters, digits and combining marks of any script, space, LF, commas
    and periods.

    A combining mark is only kept by ``sanitize_whitelist`` when it follows
    a kept letter, digit or mark.
    """
    if char in (" ", "\n") or char in ALLOWED_PUNCTUATION:
        return True
    return _is_word_char(char)


def _filter_allowed(text: str) -> str:
    kept: list[str] = []
    for ch in text:
        if not is_allowed_char(ch):
            continue
        if unicodedata.category(ch)[0] == "M" and not (kept and _is_word_char(kept[-1])):
            continue
        kept.append(ch)
    return "".join(kept)


def sanitize_whitelist(text: str) -> str:
    """Apply the whitelist policy."""
    text = normalize_line_endings(text)
    text = unicodedata.normalize("NFKC", text)
    # NFKC can produce new CRs from compatibility forms
    text = normalize_line_endings(text)
    text = "".join(" " if is_whitespace(ch) and ch != "\n" else ch for ch in text)
    text = _filter_allowed(text)
    # dropping a character can leave a newly composable pair (Hangul jamo)
    text = unicodedata.normalize("NFKC", text)
    text = _SPACE_RUNS.sub(" ", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


def sanitize_markdown(text: str) -> str:
    """Render Markdown to plain text, keeping its punctuation."""
    return markdown_to_plain_text(normalize_line_endings(text))


def sanitize_text(text: str, policy: TextPolicy | str = TextPolicy.WHITELIST) -> str:
    policy = TextPolicy(policy)
    if policy is TextPolicy.MARKDOWN:
        return sanitize_markdown(text)
    return sanitize_whitelist(text)


def chunk_text(text: str, threshold: int = DEFAULT_CHUNK_THRESHOLD) -> list[str]:
    """
    Split sanitized text into send units.

    Text whose UTF-8 encoding is longer than ``threshold`` bytes is split
    into whitespace separated words. Shorter text is a single chunk. Empty
    text yields no chunks at all.
    """
    if not text:
        return []
    if len(text.encode("utf-8")) > threshold:
        return text.split()
    return [text]


def prepare_text(
    raw: str,
    policy: TextPolicy | str = TextPolicy.WHITELIST,
    threshold: int = DEFAULT_CHUNK_THRESHOLD,
) -> list[str]:
    """Sanitize ``raw`` and chunk it."""
    return chunk_text(sanitize_text(raw, policy), threshold)


@dataclass(frozen=True)
class TextPreparer:
    """Pipeline bound to a policy and chunk threshold."""

    policy: TextPolicy = TextPolicy.WHITELIST
    threshold: int = DEFAULT_CHUNK_THRESHOLD

    def sanitize(self, raw: str) -> str:
        return sanitize_text(raw, self.policy)

    def prepare(self, raw: str) -> list[str]:
        return chunk_text(self.sanitize(raw), self.threshold)

    @classmethod
    def from_settings(cls, settings) -> "TextPreparer":
        return cls(
            policy=TextPolicy(settings.tts_text_policy),
            threshold=settings.tts_chunk_threshold,
        )
