"""Character-bounded text chunker used by every ingest path."""

from __future__ import annotations


class TextChunker:
    """Split normalized text into segments of at most ``chunk_size`` characters.

    Windows prefer to end on a line break, then on a space, as long as the
    break falls in the second half of the window; otherwise the window is cut
    hard. Segments are stripped and whitespace-only segments are dropped, so
    no returned segment is empty or longer than ``chunk_size``.
    """

    def __init__(self, chunk_size: int = 1500) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size

    def split(self, text: str) -> list[str]:
        if not text.strip():
            return []

        size = self.chunk_size
        length = len(text)

        segments: list[str] = []
        pos = 0
        while pos < length:
            end = min(pos + size, length)
            if end < length:
                end = pos + self._break_point(text[pos:end])
            segment = text[pos:end].strip()
            if segment:
                segments.append(segment)
            if end >= length:
                break
            pos = end

        return segments

    def _break_point(self, window: str) -> int:
        """Offset inside *window* where the segment should end."""
        half = len(window) // 2
        for sep in ("\n", " "):
            idx = window.rfind(sep)
            if idx > half:
                return idx
        return len(window)
