"""
Injectable persistence for the incident store.

Backends:
- MemoryPersistence: process-local, for tests and demos
- JsonResultsPersistence: one timestamped JSON file per saved batch
  (``data/results/2025-08-18T20-15-00-000000Z.json``); file names sort
  chronologically
- SqlPersistence: async SQLAlchemy, ``safety_incidents`` table

load_seed_incidents() reads the bundled starter dataset (same record format).
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetynews.config import settings
from safetynews.db.models import IncidentRecord
from safetynews.pipeline.validator import IncidentValidator
from safetynews.schemas.incident import Incident

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncidentPersistence(Protocol):
    async def load(self) -> list[Incident]: ...

    async def save(self, incidents: Sequence[Incident]) -> None: ...


class MemoryPersistence:
    def __init__(self, initial: Sequence[Incident] = ()):
        self.batches: list[list[Incident]] = [list(initial)] if initial else []

    async def load(self) -> list[Incident]:
        return [i for batch in self.batches for i in batch]

    async def save(self, incidents: Sequence[Incident]) -> None:
        self.batches.append(list(incidents))


class JsonResultsPersistence:
    """Each save() writes one results file; load() replays them oldest-first."""

    def __init__(self, results_dir: str | Path, clock: Optional[Clock] = None):
        self.results_dir = Path(results_dir)
        self._clock = clock or _utcnow
        self._validator = IncidentValidator()

    def _result_files(self) -> list[Path]:
        if not self.results_dir.is_dir():
            return []
        return sorted(self.results_dir.glob("*.json"), key=lambda p: p.name)

    def _next_path(self) -> Path:
        stamp = self._clock()
        while True:
            path = self.results_dir / f"{stamp.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.json"
            if not path.exists():
                return path
            stamp += timedelta(microseconds=1)

    def read_batch(self, filename: str) -> list:
        """Raw records from one results file. Raises FileNotFoundError / ValueError."""
        if Path(filename).name != filename or not filename.endswith(".json"):
            raise FileNotFoundError(filename)
        path = self.results_dir / filename
        return json.loads(path.read_text(encoding="utf-8"))

    def _read_records(self, path: Path) -> Optional[list]:
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("results_file_unreadable", file=path.name, error=str(exc))
            return None
        if not isinstance(records, list):
            logger.warning("results_file_not_a_list", file=path.name)
            return None
        return records

    def latest(self) -> Optional[tuple[str, list]]:
        """(timestamp, raw records) of the newest readable results file, if any."""
        for path in reversed(self._result_files()):
            records = self._read_records(path)
            if records is not None:
                return path.stem, records
        return None

    def _load_all(self) -> tuple[int, list[Incident]]:
        files = self._result_files()
        incidents: list[Incident] = []
        for path in files:
            records = self._read_records(path)
            if records is None:
                continue
            valid, rejected = self._validator.partition(records)
            if rejected:
                logger.warning("results_file_invalid_records", file=path.name, rejected=len(rejected))
            incidents.extend(valid)
        return len(files), incidents

    async def load(self) -> list[Incident]:
        files, incidents = await asyncio.to_thread(self._load_all)
        logger.info("results_loaded", files=files, incidents=len(incidents))
        return incidents

    def _write(self, incidents: Sequence[Incident]) -> Path:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self._next_path()
        payload = [i.to_record() for i in incidents]
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    async def save(self, incidents: Sequence[Incident]) -> None:
        path = await asyncio.to_thread(self._write, incidents)
        logger.info("results_saved", file=path.name, incidents=len(incidents))


def _offset_minutes(moment: datetime) -> int:
    offset = moment.utcoffset()
    return int(offset.total_seconds() // 60) if offset is not None else 0


def _restore_offset(stored: datetime, offset_minutes: int) -> datetime:
    """Rebuild the aware datetime in its original offset. SQLite hands back naive UTC."""
    if stored.tzinfo is None:
        stored = stored.replace(tzinfo=timezone.utc)
    return stored.astimezone(timezone(timedelta(minutes=offset_minutes or 0)))


class SqlPersistence:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load(self) -> list[Incident]:
        async with self.session_factory() as session:
            result = await session.execute(select(IncidentRecord).order_by(IncidentRecord.id))
            rows = result.scalars().all()
        return [
            Incident(
                datetime=_restore_offset(row.occurred_at, row.utc_offset_minutes),
                location={"type": "Point", "coordinates": [row.lng, row.lat]},
                category=row.category,
                external_id=row.news_id,
                severity=row.severity,
                keywords=row.keywords,
                summary=row.summary,
            )
            for row in rows
        ]

    async def save(self, incidents: Sequence[Incident]) -> None:
        async with self.session_factory() as session:
            session.add_all([
                IncidentRecord(
                    news_id=i.external_id,
                    occurred_at=i.datetime.astimezone(timezone.utc),
                    utc_offset_minutes=_offset_minutes(i.datetime),
                    lng=i.location.lng,
                    lat=i.location.lat,
                    category=i.category.value,
                    severity=i.severity,
                    keywords=i.keywords,
                    summary=i.summary,
                )
                for i in incidents
            ])
            await session.commit()
        logger.info("incidents_persisted", backend="sql", incidents=len(incidents))


def _read_seed(path: Path) -> tuple[list[Incident], int]:
    records = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError("seed file must hold a JSON array of incident records")
    valid, rejected = IncidentValidator().partition(records)
    return valid, len(rejected)


async def load_seed_incidents(path: str | Path) -> list[Incident]:
    """Validated incidents from a seed dataset. An unreadable seed yields nothing."""
    path = Path(path)
    try:
        incidents, rejected = await asyncio.to_thread(_read_seed, path)
    except (OSError, ValueError) as exc:
        logger.warning("seed_data_unreadable", path=str(path), error=str(exc))
        return []
    if rejected:
        logger.warning("seed_data_invalid_records", path=str(path), rejected=rejected)
    return incidents


async def build_persistence(backend: Optional[str] = None) -> IncidentPersistence:
    """Persistence backend selected by PERSISTENCE_BACKEND."""
    backend = (backend or settings.persistence_backend).lower()
    if backend == "memory":
        return MemoryPersistence()
    if backend == "json":
        return JsonResultsPersistence(settings.results_dir)
    if backend == "sql":
        from safetynews.db.engine import get_session_factory, init_db

        await init_db()
        return SqlPersistence(get_session_factory())
    raise ValueError(f"Unknown persistence backend '{backend}'")
