"""Render memories for the system prompt.

The ``[ID: n]`` marker is the only way the model can refer back to a
memory in ``<editMemories>`` and ``<deleteMemories>``; keep it exact.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bellpull.memory.models import Memory

NO_MEMORIES = "No stored memories are available."


def format_memories(memories: Iterable[Memory]) -> str:
    """Format memories as a dated section and a general section."""
    memories = list(memories)
    if not memories:
        return NO_MEMORIES

    dated = sorted((m for m in memories if m.date is not None), key=lambda m: m.date)
    dateless = [m for m in memories if m.date is None]

    sections = []
    if dated:
        lines = [f"- {m.date.isoformat()} [ID: {m.id}]: {m.text}" for m in dated]
        sections.append("Dated memories:\n" + "\n".join(lines))
    if dateless:
        lines = [f"- [ID: {m.id}]: {m.text}" for m in dateless]
        sections.append("General memories:\n" + "\n".join(lines))

    return "\n\n".join(sections)
