"""
Text document - offset/position conversion over an immutable text
"""

import bisect
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position"""
    line: int
    character: int


class TextDocument:
    """In-memory document exposing the text operations the locator needs"""

    def __init__(self, text: str, uri: Optional[str] = None):
        """
        Initialize TextDocument

        Args:
            text: Full document text
            uri: Optional source identifier (file path) used in reports
        """
        self._text = text
        self.uri = uri
        # Offsets at which each line starts
        self._line_starts: List[int] = [0]
        for i, ch in enumerate(text):
            if ch == '\n':
                self._line_starts.append(i + 1)

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def get_text(self, start: Optional[int] = None, end: Optional[int] = None) -> str:
        """
        Get text of a half-open offset range (whole text when no range given)

        Args:
            start: Start offset (inclusive)
            end: End offset (exclusive)

        Returns:
            Text between the clamped offsets
        """
        if start is None and end is None:
            return self._text
        lo = self._clamp(0 if start is None else start)
        hi = self._clamp(len(self._text) if end is None else end)
        return self._text[lo:hi]

    def position_at(self, offset: int) -> Position:
        """
        Convert a character offset to a line/character position

        Args:
            offset: Character offset, clamped to the document bounds

        Returns:
            Position of the offset
        """
        offset = self._clamp(offset)
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def offset_at(self, line: int, character: int) -> int:
        """
        Convert a line/character position to a character offset

        Args:
            line: Zero-based line number, clamped to existing lines
            character: Zero-based column, clamped to the line length

        Returns:
            Character offset
        """
        if line < 0:
            return 0
        if line >= len(self._line_starts):
            return len(self._text)
        line_start = self._line_starts[line]
        if line + 1 < len(self._line_starts):
            # exclude the newline itself
            line_end = self._line_starts[line + 1] - 1
        else:
            line_end = len(self._text)
        return min(line_start + max(character, 0), line_end)

    def _clamp(self, offset: int) -> int:
        return max(0, min(offset, len(self._text)))
