"""Data models for stored memories and the memory tags in LLM replies."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _date_only(value: Any) -> Any:
    """Keep the date part of an ISO datetime string."""
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


class Memory(BaseModel):
    """A persisted fact, optionally pinned to a calendar date."""

    id: int
    date: dt.date | None = None
    text: str = Field(min_length=1)


class NewMemory(BaseModel):
    """One entry of a ``<createMemories>`` payload."""

    text: str = Field(min_length=1)
    date: dt.date | None = None

    @field_validator("date", mode="before")
    @classmethod
    def strip_time(cls, value: Any) -> Any:
        return _date_only(value)


class MemoryEdit(BaseModel):
    """One entry of an ``<editMemories>`` payload.

    ``id`` is a string because it comes straight from LLM output; it is
    parsed into a store key by the store. ``tags`` is accepted but there is
    no column for it.
    """

    id: str
    text: str | None = Field(default=None, min_length=1)
    date: dt.date | None = None
    tags: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def strip_time(cls, value: Any) -> Any:
        return _date_only(value)

    def to_patch(self, memory_id: int) -> MemoryPatch:
        """Carry over only the fields the payload actually set."""
        fields = self.model_dump(exclude_unset=True, include={"text", "date"})
        if fields.get("text") is None:
            fields.pop("text", None)
        return MemoryPatch(id=memory_id, **fields)


class MemoryPatch(BaseModel):
    """Column changes for one memory row. Unset fields are left untouched;
    an explicit ``date=None`` clears the date."""

    id: int
    text: str | None = Field(default=None, min_length=1)
    date: dt.date | None = None

    def changes(self) -> dict[str, Any]:
        """Column to value for every field that was set."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class MemoryAnalysis(BaseModel):
    """What one LLM reply asks us to do with memories, plus the visible text."""

    memories: list[NewMemory] = Field(default_factory=list)
    edit_memories: list[MemoryEdit] = Field(default_factory=list)
    delete_memories: list[str] = Field(default_factory=list)
    response: str = ""
