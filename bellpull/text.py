"""Text helpers for outbound chat messages."""

from __future__ import annotations


def _segments(text: str, max_length: int) -> list[str]:
    """Lines with their newline, hard-splitting any line longer than *max_length*."""
    segments: list[str] = []
    for line in text.split("\n"):
        line += "\n"
        if len(line) > max_length:
            segments.extend(line[i : i + max_length] for i in range(0, len(line), max_length))
        else:
            segments.append(line)
    return segments


def chunk_by_lines(text: str, max_length: int) -> list[str]:
    """Split *text* into trimmed, non-empty chunks of at most *max_length* characters.

    Whole lines are packed into each chunk where possible; a line that is
    itself too long is cut into fixed-size pieces.
    """
    if max_length < 1:
        raise ValueError("max_length must be at least 1")

    if len(text) <= max_length:
        chunks = [text]
    else:
        chunks = [""]
        for segment in _segments(text, max_length):
            if len(chunks[-1]) + len(segment) > max_length:
                chunks.append(segment)
            else:
                chunks[-1] += segment

    return [chunk.strip() for chunk in chunks if chunk.strip()]
