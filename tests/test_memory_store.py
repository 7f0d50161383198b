"""Tests for MemoryStore — aiosqlite CRUD and date windows."""

import datetime as dt
from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from bellpull.db import Database
from bellpull.errors import AppError, ErrorKind
from bellpull.memory.models import MemoryAnalysis, MemoryEdit, NewMemory
from bellpull.memory.store import MemoryStore, parse_memory_id


async def _seed(store: MemoryStore, *items: tuple[str, str | None]) -> None:
    await store.create([NewMemory(text=text, date=date) for text, date in items])


async def _texts(store: MemoryStore, **kwargs) -> list[str]:
    return [m.text for m in await store.get_all(**kwargs)]


# -- parse_memory_id -----------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", 1), (" 42 ", 42), (7, 7), ("abc123", None), ("", None), ("0", None), ("-3", None)],
)
def test_parse_memory_id(raw, expected) -> None:
    assert parse_memory_id(raw) == expected


# -- create / get_all ----------------------------------------------------------


async def test_create_and_get_all(memory_store: MemoryStore) -> None:
    count = await memory_store.create([
        {"text": "Dentist", "date": "2024-03-02"},
        {"text": "Likes tea"},
    ])
    assert count == 2

    memories = await memory_store.get_all()
    assert [(m.text, m.date) for m in memories] == [
        ("Dentist", dt.date(2024, 3, 2)),
        ("Likes tea", None),
    ]
    assert all(isinstance(m.id, int) for m in memories)


async def test_create_empty_is_noop(memory_store: MemoryStore) -> None:
    assert await memory_store.create([]) == 0
    assert await memory_store.get_all() == []


async def test_create_rejects_empty_text(memory_store: MemoryStore) -> None:
    with pytest.raises(AppError) as excinfo:
        await memory_store.create([{"text": ""}])
    assert excinfo.value.kind is ErrorKind.VALIDATION


async def test_dated_memories_sorted_ascending(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Later", "2024-05-01"), ("Sooner", "2024-01-01"))
    assert await _texts(memory_store) == ["Sooner", "Later"]


async def test_window_is_seven_days_inclusive(memory_store: MemoryStore) -> None:
    await _seed(
        memory_store,
        ("Before", "2022-12-31"),
        ("Start", "2023-01-01"),
        ("End", "2023-01-08"),
        ("After", "2023-01-09"),
        ("Always", None),
    )

    texts = await _texts(memory_store, include_date=True, start_date="2023-01-01")
    assert texts == ["Start", "End", "Always"]


async def test_window_accepts_date_objects(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("In", "2023-01-03"), ("Out", "2023-02-01"))
    assert await _texts(memory_store, start_date=dt.date(2023, 1, 1)) == ["In"]


async def test_no_start_date_returns_every_dated_memory(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Old", "2001-01-01"), ("New", "2099-01-01"))
    assert await _texts(memory_store) == ["Old", "New"]


async def test_exclude_dates_returns_only_dateless(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Dated", "2023-01-01"), ("General", None))
    assert await _texts(memory_store, include_date=False) == ["General"]


async def test_get_relevant_uses_today(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Past", "2024-06-01"), ("Soon", "2024-06-12"), ("General", None))

    with patch.object(memory_store, "today", return_value=dt.date(2024, 6, 10)):
        texts = [m.text for m in await memory_store.get_relevant()]

    assert texts == ["Soon", "General"]


def test_today_uses_configured_zone(memory_store: MemoryStore) -> None:
    import zoneinfo

    expected = dt.datetime.now(zoneinfo.ZoneInfo("America/New_York")).date()
    assert memory_store.today() == expected


async def test_invalid_stored_row_is_validation_error(
    memory_store: MemoryStore, database: Database
) -> None:
    db = await database.connect()
    try:
        await db.execute("INSERT INTO memories (date, text) VALUES (?, ?)", ("not-a-date", "x"))
        await db.commit()
    finally:
        await db.close()

    with pytest.raises(AppError) as excinfo:
        await memory_store.get_all()
    assert excinfo.value.kind is ErrorKind.VALIDATION


async def test_unreadable_database_is_storage_error(tmp_path) -> None:
    # A directory can't be opened as a database file.
    store = MemoryStore(db=Database(db_path=tmp_path))

    with pytest.raises(AppError) as excinfo:
        await store.get_all()
    assert excinfo.value.kind is ErrorKind.STORAGE
    assert isinstance(excinfo.value.cause, aiosqlite.Error)


# -- edit ----------------------------------------------------------------------


async def test_edit_text_only_keeps_date(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Dentist", "2024-03-02"))
    [memory] = await memory_store.get_all()

    updated = await memory_store.edit([MemoryEdit(id=str(memory.id), text="Orthodontist")])

    assert updated == [memory.id]
    [after] = await memory_store.get_all()
    assert after.text == "Orthodontist"
    assert after.date == dt.date(2024, 3, 2)


async def test_edit_date_only_keeps_text(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Dentist", "2024-03-02"))
    [memory] = await memory_store.get_all()

    await memory_store.edit([MemoryEdit(id=str(memory.id), date="2024-04-01")])

    [after] = await memory_store.get_all()
    assert after.text == "Dentist"
    assert after.date == dt.date(2024, 4, 1)


async def test_edit_explicit_null_date_clears_it(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Dentist", "2024-03-02"))
    [memory] = await memory_store.get_all()

    await memory_store.edit([MemoryEdit.model_validate({"id": str(memory.id), "date": None})])

    [after] = await memory_store.get_all()
    assert after.date is None


async def test_edit_skips_invalid_ids(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Keep", None))
    [memory] = await memory_store.get_all()

    updated = await memory_store.edit([
        MemoryEdit(id="abc123", text="Nope"),
        MemoryEdit(id=str(memory.id), text="Changed"),
    ])

    assert updated == [memory.id]
    assert await _texts(memory_store) == ["Changed"]


async def test_edit_missing_row_reports_nothing(memory_store: MemoryStore) -> None:
    assert await memory_store.edit([MemoryEdit(id="999", text="Ghost")]) == []


async def test_edit_ignores_tags(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Keep", None))
    [memory] = await memory_store.get_all()

    assert await memory_store.edit([MemoryEdit(id=str(memory.id), tags="home")]) == []
    assert await _texts(memory_store) == ["Keep"]


# -- delete --------------------------------------------------------------------


async def test_delete_by_id(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("One", None), ("Two", None), ("Three", None))
    one, two, _ = await memory_store.get_all()

    deleted = await memory_store.delete([str(one.id), str(two.id), "bogus"])

    assert deleted == 2
    assert await _texts(memory_store) == ["Three"]


async def test_delete_with_only_invalid_ids_issues_nothing(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("One", None))
    with patch.object(memory_store, "_run", new=AsyncMock()) as run:
        assert await memory_store.delete(["abc", ""]) == 0
    run.assert_not_awaited()


# -- reconcile -----------------------------------------------------------------


async def test_reconcile_create_edit_delete(memory_store: MemoryStore) -> None:
    await _seed(memory_store, ("Original item", None), ("To be deleted", None))
    original, doomed = await memory_store.get_all()

    report = await memory_store.reconcile(
        MemoryAnalysis(
            memories=[NewMemory(text="New item")],
            edit_memories=[MemoryEdit(id=str(original.id), text="Updated")],
            delete_memories=[str(doomed.id)],
        )
    )

    assert (report.created, report.edited, report.deleted) == (1, 1, 1)
    assert sorted(await _texts(memory_store)) == ["New item", "Updated"]


async def test_reconcile_empty_analysis_is_noop(memory_store: MemoryStore) -> None:
    report = await memory_store.reconcile(MemoryAnalysis(response="hi"))
    assert (report.created, report.edited, report.deleted) == (0, 0, 0)


async def test_reconcile_failure_keeps_earlier_steps(memory_store: MemoryStore) -> None:
    failure = AppError(ErrorKind.STORAGE, "Failed to edit memories")
    analysis = MemoryAnalysis(
        memories=[NewMemory(text="Created")],
        edit_memories=[MemoryEdit(id="1", text="x")],
    )

    with patch.object(memory_store, "edit", new=AsyncMock(side_effect=failure)):
        with pytest.raises(AppError):
            await memory_store.reconcile(analysis)

    assert await _texts(memory_store) == ["Created"]


# -- Singleton -----------------------------------------------------------------


def test_singleton_get() -> None:
    MemoryStore._reset()
    try:
        assert MemoryStore.get() is MemoryStore.get()
    finally:
        MemoryStore._reset()
