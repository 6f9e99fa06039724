"""
Persistence backend tests: JSON results files and async SQLAlchemy.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from safetynews.db.engine import init_db
from safetynews.db.persistence import (
    JsonResultsPersistence,
    MemoryPersistence,
    SqlPersistence,
    build_persistence,
)
from safetynews.db.store import IncidentStore
from safetynews.engine.factors import is_high_risk_time

STAMP = datetime(2025, 8, 18, 20, 15, tzinfo=timezone.utc)


@pytest.mark.asyncio
class TestJsonResultsPersistence:
    async def test_save_writes_timestamped_file(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        await backend.save([incident_factory()])

        files = sorted(p.name for p in tmp_path.iterdir())
        assert files == ["2025-08-18T20-15-00-000000Z.json"]
        records = json.loads((tmp_path / files[0]).read_text())
        assert records[0]["type"] == "Property & Financial Crimes"
        assert "newsID" in records[0]

    async def test_same_instant_saves_do_not_collide(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        await backend.save([incident_factory()])
        await backend.save([incident_factory()])

        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "2025-08-18T20-15-00-000000Z.json",
            "2025-08-18T20-15-00-000001Z.json",
        ]

    async def test_load_replays_all_files_and_skips_bad_ones(self, tmp_path, incident_factory, record_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        first, second = incident_factory(), incident_factory()
        await backend.save([first])
        await backend.save([second])
        (tmp_path / "2025-08-19T00-00-00-000000Z.json").write_text("{not json")
        (tmp_path / "2025-08-19T00-00-01-000000Z.json").write_text('{"an": "object"}')
        (tmp_path / "2025-08-19T00-00-02-000000Z.json").write_text(
            json.dumps([record_factory(newsID="ok"), record_factory(severity=11)])
        )

        loaded = await backend.load()
        assert [i.external_id for i in loaded] == [first.external_id, second.external_id, "ok"]

    async def test_undecodable_file_is_skipped(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        kept = incident_factory()
        await backend.save([kept])
        (tmp_path / "2025-08-19T00-00-00-000000Z.json").write_bytes(b"[\xff\xfe]")

        reopened = await IncidentStore.open(JsonResultsPersistence(tmp_path))
        assert [i.external_id for i in reopened.all()] == [kept.external_id]

    async def test_latest_skips_unreadable_newest_file(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        await backend.save([incident_factory()])
        (tmp_path / "2025-08-19T00-00-00-000000Z.json").write_bytes(b"[\xff\xfe]")

        stem, records = backend.latest()
        assert stem == "2025-08-18T20-15-00-000000Z"
        assert len(records) == 1

    async def test_missing_directory_loads_empty(self, tmp_path):
        assert await JsonResultsPersistence(tmp_path / "absent").load() == []

    async def test_latest_and_read_batch(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        assert backend.latest() is None

        incident = incident_factory()
        await backend.save([incident])
        stem, records = backend.latest()

        assert stem == "2025-08-18T20-15-00-000000Z"
        assert records == [incident.to_record()]
        assert backend.read_batch(f"{stem}.json") == records

    @pytest.mark.parametrize("name", ["../secrets.json", "nested/file.json", "notes.txt"])
    async def test_read_batch_rejects_paths(self, tmp_path, name):
        with pytest.raises(FileNotFoundError):
            JsonResultsPersistence(tmp_path).read_batch(name)

    async def test_store_round_trip(self, tmp_path, incident_factory):
        backend = JsonResultsPersistence(tmp_path, clock=lambda: STAMP)
        store = IncidentStore(backend)
        await store.extend([incident_factory(), incident_factory()])

        reopened = await IncidentStore.open(JsonResultsPersistence(tmp_path))
        assert reopened.all() == store.all()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'incidents.db'}")
    await init_db(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
class TestSqlPersistence:
    async def test_save_and_load_in_insertion_order(self, session_factory, incident_factory):
        backend = SqlPersistence(session_factory)
        first = [incident_factory(hours_ago=1), incident_factory(hours_ago=5)]
        second = [incident_factory(hours_ago=3, type="Violent Crimes", severity=4)]
        await backend.save(first)
        await backend.save(second)

        loaded = await backend.load()
        assert [i.external_id for i in loaded] == [i.external_id for i in first + second]
        assert loaded == first + second

    async def test_datetimes_keep_their_offset(self, session_factory, incident_factory):
        backend = SqlPersistence(session_factory)
        original = incident_factory(datetime="2025-08-22T23:30:00+02:00")
        await backend.save([original])

        (loaded,) = await backend.load()
        assert loaded.datetime == datetime(2025, 8, 22, 21, 30, tzinfo=timezone.utc)
        assert loaded.datetime.utcoffset() == timedelta(hours=2)
        assert loaded.datetime.hour == 23
        assert is_high_risk_time(loaded) is is_high_risk_time(original) is True


@pytest.mark.asyncio
class TestBuildPersistence:
    async def test_memory(self):
        assert isinstance(await build_persistence("memory"), MemoryPersistence)

    async def test_json(self):
        assert isinstance(await build_persistence("JSON"), JsonResultsPersistence)

    async def test_unknown(self):
        with pytest.raises(ValueError):
            await build_persistence("cassandra")
