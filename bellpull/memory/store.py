"""CRUD and date-windowed reads of memories in aiosqlite."""

from __future__ import annotations

import datetime as dt
import logging
import zoneinfo
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import aiosqlite
from pydantic import ValidationError

from bellpull.config import settings
from bellpull.db import Database
from bellpull.errors import AppError, ErrorKind
from bellpull.memory.models import Memory, MemoryAnalysis, MemoryEdit, MemoryPatch, NewMemory

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Dated memories are shown from the start date through this many days after it.
WINDOW_DAYS = 7

# Columns a MemoryPatch may touch, in SET-clause order.
_PATCHABLE_COLUMNS = ("text", "date")


def parse_memory_id(raw: object) -> int | None:
    """Turn an LLM-supplied id into a store key, or None if it isn't one."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def _to_column(value: Any) -> Any:
    if isinstance(value, dt.date):
        return value.isoformat()
    return value


@dataclass
class ReconcileReport:
    """How many rows each reconcile step touched."""

    created: int = 0
    edited: int = 0
    deleted: int = 0


class MemoryStore:
    """Persists memories in SQLite.

    Singleton accessed via ``MemoryStore.get()``. Pass an explicit
    :class:`Database` for test isolation.
    """

    _instance: MemoryStore | None = None

    def __init__(self, db: Database | None = None, timezone: str | None = None) -> None:
        self._db = db or Database.get()
        self._timezone = timezone or settings.timezone

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _run(
        self, action: str, work: Callable[[aiosqlite.Connection], Awaitable[Any]]
    ) -> Any:
        """Run *work* on a fresh connection, mapping driver errors to STORAGE."""
        try:
            db = await self._db.connect()
            try:
                return await work(db)
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise AppError(ErrorKind.STORAGE, f"Failed to {action}", cause=exc) from exc

    # -- Read ------------------------------------------------------------------

    async def get_all(
        self,
        *,
        include_date: bool = True,
        start_date: dt.date | str | None = None,
    ) -> list[Memory]:
        """Return dated memories (oldest first), then every dateless memory.

        With *start_date*, dated memories are limited to the inclusive window
        ``start_date .. start_date + 7 days``. Dateless memories are never
        filtered. With ``include_date=False`` only dateless memories are
        returned.
        """
        start = _to_column(start_date) if start_date else None

        async def work(db: aiosqlite.Connection) -> list[aiosqlite.Row]:
            rows: list[aiosqlite.Row] = []
            if include_date:
                sql = "SELECT id, date, text FROM memories WHERE date IS NOT NULL"
                params: tuple = ()
                if start:
                    sql += f" AND date >= ? AND date(date) <= date(?, '+{WINDOW_DAYS} days')"
                    params = (start, start)
                sql += " ORDER BY date ASC"
                cursor = await db.execute(sql, params)
                rows.extend(await cursor.fetchall())
            cursor = await db.execute(
                "SELECT id, date, text FROM memories WHERE date IS NULL ORDER BY id"
            )
            rows.extend(await cursor.fetchall())
            return rows

        rows = await self._run("read memories", work)
        try:
            return [Memory.model_validate(dict(row)) for row in rows]
        except ValidationError as exc:
            raise AppError(
                ErrorKind.VALIDATION, "Stored memory failed validation", cause=exc
            ) from exc

    def today(self) -> dt.date:
        """Today's date in the configured time zone."""
        return dt.datetime.now(zoneinfo.ZoneInfo(self._timezone)).date()

    async def get_relevant(self) -> list[Memory]:
        """Memories for the coming week plus every dateless memory."""
        return await self.get_all(include_date=True, start_date=self.today())

    # -- Write -----------------------------------------------------------------

    async def create(self, items: Sequence[NewMemory | dict[str, Any]]) -> int:
        """Insert memories in bulk. Returns the number inserted."""
        if not items:
            return 0
        try:
            memories = [NewMemory.model_validate(item) for item in items]
        except ValidationError as exc:
            raise AppError(ErrorKind.VALIDATION, "Invalid memory input", cause=exc) from exc

        rows = [(_to_column(m.date), m.text) for m in memories]

        async def work(db: aiosqlite.Connection) -> None:
            await db.executemany("INSERT INTO memories (date, text) VALUES (?, ?)", rows)
            await db.commit()

        await self._run("create memories", work)
        return len(rows)

    async def edit(self, items: Iterable[MemoryEdit]) -> list[int]:
        """Apply partial updates. Returns the ids that were updated.

        Items whose id is not a valid store key are skipped; the ids come
        from LLM output and are not trusted.
        """
        patches: list[MemoryPatch] = []
        for item in items:
            memory_id = parse_memory_id(item.id)
            if memory_id is None:
                logger.warning("Skipping edit with invalid memory id %r", item.id)
                continue
            patches.append(item.to_patch(memory_id))

        if not patches:
            return []

        async def work(db: aiosqlite.Connection) -> list[int]:
            updated = [p.id for p in patches if await self._apply_patch(db, p)]
            await db.commit()
            return updated

        return await self._run("edit memories", work)

    @staticmethod
    async def _apply_patch(db: aiosqlite.Connection, patch: MemoryPatch) -> bool:
        """Write the set fields of *patch*. Returns True if a row changed."""
        changes = patch.changes()
        columns = [col for col in _PATCHABLE_COLUMNS if col in changes]
        if not columns:
            return False
        assignments = ", ".join(f"{col} = ?" for col in columns)
        values = [_to_column(changes[col]) for col in columns]
        cursor = await db.execute(
            f"UPDATE memories SET {assignments} WHERE id = ?",  # noqa: S608
            (*values, patch.id),
        )
        return cursor.rowcount > 0

    async def delete(self, ids: Iterable[str]) -> int:
        """Delete memories by id in one statement. Invalid ids are dropped."""
        keys = [k for k in (parse_memory_id(raw) for raw in ids) if k is not None]
        if not keys:
            return 0
        placeholders = ", ".join("?" for _ in keys)

        async def work(db: aiosqlite.Connection) -> int:
            cursor = await db.execute(
                f"DELETE FROM memories WHERE id IN ({placeholders})",  # noqa: S608
                keys,
            )
            await db.commit()
            return cursor.rowcount

        return await self._run("delete memories", work)

    # -- Reconcile -------------------------------------------------------------

    async def reconcile(self, analysis: MemoryAnalysis) -> ReconcileReport:
        """Apply an analysis: create, then edit, then delete.

        Each step commits on its own. A failure raises and leaves earlier
        steps in place.
        """
        report = ReconcileReport()

        if analysis.memories:
            report.created = await self.create(analysis.memories)
            logger.info("Created %d memories", report.created)

        if analysis.edit_memories:
            edited = await self.edit(analysis.edit_memories)
            report.edited = len(edited)
            logger.info("Edited %d memories with IDs: %s", len(edited), edited)

        if analysis.delete_memories:
            report.deleted = await self.delete(analysis.delete_memories)
            logger.info(
                "Deleted %d memories with IDs: %s",
                report.deleted,
                ", ".join(analysis.delete_memories),
            )

        return report
