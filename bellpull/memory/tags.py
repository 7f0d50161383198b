"""Pull memory instructions out of an LLM reply.

The model embeds JSON in ``<createMemories>``, ``<editMemories>`` and
``<deleteMemories>`` tags. Only the first block of each kind is read, and
a block that is not valid JSON or does not match its schema counts as
empty. Nothing here raises.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from bellpull.memory.models import MemoryAnalysis, MemoryEdit, NewMemory

logger = logging.getLogger(__name__)

CREATE_TAG = "createMemories"
EDIT_TAG = "editMemories"
DELETE_TAG = "deleteMemories"
MEMORY_TAGS = (CREATE_TAG, EDIT_TAG, DELETE_TAG)

_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    CREATE_TAG: TypeAdapter(list[NewMemory]),
    EDIT_TAG: TypeAdapter(list[MemoryEdit]),
    DELETE_TAG: TypeAdapter(list[str]),
}

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def _tag_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{tag}>(.*?)</{tag}>", re.DOTALL)


_PATTERNS = {tag: _tag_pattern(tag) for tag in MEMORY_TAGS}


def extract_tag(tag: str, text: str) -> str | None:
    """Body of the first ``<tag>...</tag>`` block, or None."""
    match = _PATTERNS.get(tag, _tag_pattern(tag)).search(text)
    return match.group(1) if match else None


def strip_tags(text: str, tags: tuple[str, ...] = MEMORY_TAGS) -> str:
    """Remove tag blocks and tidy the whitespace they leave behind."""
    for tag in tags:
        text = _PATTERNS.get(tag, _tag_pattern(tag)).sub("", text)
    return _EXCESS_NEWLINES.sub("\n\n", text.strip())


def _parse_block(tag: str, text: str) -> list[Any]:
    body = extract_tag(tag, text)
    if body is None:
        return []
    try:
        return _ADAPTERS[tag].validate_python(json.loads(body))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Ignoring malformed <%s> block: %s", tag, exc)
        return []


def parse_analysis(text: str | None) -> MemoryAnalysis:
    """Split a raw reply into memory operations and the user-visible text."""
    text = text or ""
    return MemoryAnalysis(
        memories=_parse_block(CREATE_TAG, text),
        edit_memories=_parse_block(EDIT_TAG, text),
        delete_memories=_parse_block(DELETE_TAG, text),
        response=strip_tags(text),
    )
