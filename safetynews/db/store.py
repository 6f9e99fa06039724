"""
IncidentStore - append-only collection of validated incidents.

Reads never lock: each query iterates over an immutable tuple snapshot taken
at call time. Appends are serialised through an asyncio.Lock and persisted
before the snapshot is swapped.

Every read filter (since, between, within_radius, matching) is a linear
O(n) scan over the full set; there is no index.
"""

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import structlog

from safetynews.db.persistence import IncidentPersistence, MemoryPersistence, load_seed_incidents
from safetynews.geo import Point, haversine_km
from safetynews.schemas.incident import Incident

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncidentStore:
    def __init__(
        self,
        persistence: Optional[IncidentPersistence] = None,
        incidents: Iterable[Incident] = (),
        clock: Optional[Clock] = None,
    ):
        self.persistence = persistence or MemoryPersistence()
        self._incidents: tuple[Incident, ...] = tuple(incidents)
        self._lock = asyncio.Lock()
        self._clock = clock or _utcnow
        self._last_batch: Optional[tuple[datetime, tuple[Incident, ...]]] = None

    @classmethod
    async def open(
        cls,
        persistence: Optional[IncidentPersistence] = None,
        clock: Optional[Clock] = None,
        seed_path: Optional[str | Path] = None,
    ) -> "IncidentStore":
        """
        Create a store preloaded with everything the backend already holds.

        An empty backend is seeded from ``seed_path``. Seed incidents live in
        memory only and are re-read on every start until the backend has data.
        """
        persistence = persistence or MemoryPersistence()
        existing = await persistence.load()
        seeded = 0
        if not existing and seed_path:
            existing = await load_seed_incidents(seed_path)
            seeded = len(existing)
        logger.info(
            "incident_store_opened",
            backend=type(persistence).__name__,
            incidents=len(existing),
            seeded=seeded,
        )
        return cls(persistence, existing, clock=clock)

    def __len__(self) -> int:
        return len(self._incidents)

    def now(self) -> datetime:
        return self._clock()

    # ── writes ──────────────────────────────────────────────────────────

    async def append(self, incident: Incident) -> None:
        await self.extend([incident])

    async def extend(self, incidents: Sequence[Incident]) -> None:
        """Persist one batch, then publish it to readers."""
        if not incidents:
            return
        async with self._lock:
            await self.persistence.save(incidents)
            batch = tuple(incidents)
            self._incidents = self._incidents + batch
            self._last_batch = (self._clock(), batch)
        logger.info("incidents_appended", count=len(incidents), total=len(self._incidents))

    # ── reads ───────────────────────────────────────────────────────────

    def all(self) -> list[Incident]:
        return list(self._incidents)

    def since(self, window: timedelta | int, now: Optional[datetime] = None) -> list[Incident]:
        """Incidents newer than ``now - window``; an int window is milliseconds."""
        if not isinstance(window, timedelta):
            window = timedelta(milliseconds=window)
        cutoff = (now or self._clock()) - window
        return [i for i in self._incidents if i.datetime > cutoff]

    def between(self, start: datetime, end: datetime) -> list[Incident]:
        """Incidents with ``start < datetime <= end``."""
        return [i for i in self._incidents if start < i.datetime <= end]

    def within_radius(self, point: Point, radius_km: float) -> list[Incident]:
        return [i for i in self._incidents if haversine_km(point, i.point) <= radius_km]

    def matching(self, text: str) -> list[Incident]:
        """Case-insensitive substring match on keywords, summary or identifier."""
        needle = text.lower()
        return [
            i for i in self._incidents
            if any(needle in k.lower() for k in i.keywords)
            or needle in i.summary.lower()
            or needle in i.external_id.lower()
        ]

    def latest_batch(self) -> Optional[tuple[datetime, list[Incident]]]:
        """When the most recent batch was appended in this process, and its incidents."""
        if self._last_batch is None:
            return None
        appended_at, batch = self._last_batch
        return appended_at, list(batch)

    def statistics(self) -> dict:
        snapshot = self._incidents
        total = len(snapshot)
        severity_distribution = Counter(i.severity for i in snapshot)
        return {
            "totalReports": total,
            "crimeTypes": len({i.category for i in snapshot}),
            "averageSeverity": (
                round(sum(i.severity for i in snapshot) / total, 2) if total else 0.0
            ),
            "severityDistribution": {
                str(level): count for level, count in sorted(severity_distribution.items())
            },
            "recentReports": len(self.since(timedelta(hours=24))),
        }
