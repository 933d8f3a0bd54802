"""Cursor context extraction and the minimal text-buffer interface.

All internal logic runs on LF-normalised text.  Editors that keep CRLF
buffers are normalised here once so that every offset computed downstream
(matchup, postprocess, replace ranges) refers to the same representation.
"""

from __future__ import annotations

import sys
from typing import List, NamedTuple, Protocol, runtime_checkable

LF = "\n"
ALL_LINEBREAK_SYMBOLS = ("\r\n", "\n")

# Column used for "replace up to the end of the line" ranges.
END_OF_LINE = sys.maxsize


class Position(NamedTuple):
    """Zero-based line / column pair."""

    line: int
    column: int


class Range(NamedTuple):
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def empty(cls, position: Position) -> "Range":
        return cls(position.line, position.column, position.line, position.column)

    @property
    def is_empty(self) -> bool:
        return (self.start_line, self.start_column) == (self.end_line, self.end_column)


class PrefixAndSuffixInfo(NamedTuple):
    prefix: str
    suffix: str
    prefix_lines: List[str]
    suffix_lines: List[str]
    prefix_to_the_left_of_cursor: str
    suffix_to_the_right_of_cursor: str


def normalize_line_endings(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""

    return text.replace("\r\n", "\n").replace("\r", "\n")


def get_prefix_and_suffix_info(text: str, offset: int) -> PrefixAndSuffixInfo:
    """Split *text* around *offset* (an index into *text* as given).

    Pure function.  If *offset* falls between the two characters of a CRLF
    pair the cursor is moved past the pair.
    """

    offset = max(0, min(offset, len(text)))
    if 0 < offset < len(text) and text[offset - 1] == "\r" and text[offset] == "\n":
        offset += 1

    prefix = normalize_line_endings(text[:offset])
    suffix = normalize_line_endings(text[offset:])

    prefix_lines = prefix.split(LF)
    suffix_lines = suffix.split(LF)

    return PrefixAndSuffixInfo(
        prefix=prefix,
        suffix=suffix,
        prefix_lines=prefix_lines,
        suffix_lines=suffix_lines,
        prefix_to_the_left_of_cursor=prefix_lines[-1],
        suffix_to_the_right_of_cursor=suffix_lines[0],
    )


def get_document_prefix_and_suffix_info(document: "TextDocument", position: Position) -> PrefixAndSuffixInfo:
    text = document.get_value()
    return get_prefix_and_suffix_info(text, document.offset_at(position))


def offset_at(text: str, position: Position) -> int:
    """Flat offset of *position* inside LF-normalised *text* (clamped)."""

    lines = text.split(LF)
    line = max(0, min(position.line, len(lines) - 1))
    column = max(0, min(position.column, len(lines[line])))
    return sum(len(l) + 1 for l in lines[:line]) + column


def position_at(text: str, offset: int) -> Position:
    offset = max(0, min(offset, len(text)))
    before = text[:offset]
    line = before.count(LF)
    return Position(line, offset - (before.rfind(LF) + 1))


# ---------------------------------------------------------------------------
# Text buffer provider
# ---------------------------------------------------------------------------


@runtime_checkable
class TextDocument(Protocol):
    """What the engine needs from the editor's buffer."""

    @property
    def uri(self) -> str: ...

    @property
    def line_count(self) -> int: ...

    def get_value(self) -> str:
        """Full text with LF line endings."""

    def offset_at(self, position: Position) -> int: ...

    def position_at(self, offset: int) -> Position: ...


class InMemoryDocument:
    """Plain-string :class:`TextDocument` used by the replay harness and tests."""

    def __init__(self, uri: str, text: str = ""):
        self._uri = uri
        self._text = normalize_line_endings(text)

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def line_count(self) -> int:
        return self._text.count(LF) + 1

    def get_value(self) -> str:
        return self._text

    def line_at(self, line: int) -> str:
        return self._text.split(LF)[line]

    def offset_at(self, position: Position) -> int:
        return offset_at(self._text, position)

    def position_at(self, offset: int) -> Position:
        return position_at(self._text, offset)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def insert(self, position: Position, text: str) -> Position:
        """Insert *text* at *position* and return the cursor after it."""

        return self.apply_edit(Range.empty(position), text)

    def apply_edit(self, rng: Range, text: str) -> Position:
        """Replace *rng* with *text*; return the position after the new text."""

        start = self.offset_at(Position(rng.start_line, rng.start_column))
        end = self.offset_at(Position(rng.end_line, rng.end_column))
        text = normalize_line_endings(text)
        self._text = self._text[:start] + text + self._text[max(start, end):]
        return self.position_at(start + len(text))
