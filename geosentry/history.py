"""Recording, retrieval and time-window anomaly detection for entity events."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from itertools import islice
from typing import Any

DEFAULT_THRESHOLD = 5
ANOMALY_FETCH_LIMIT = 1000


class HistoryError(Exception):
    """Raised when a history operation gets invalid input or fails."""


@dataclass
class HistoryEvent:
    """A single historical event for an entity."""

    id: int
    entity_id: str
    event_type: str
    timestamp: datetime
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class AnomalyConfig:
    """How many events of one type are allowed in the detection window."""

    default_threshold: int = DEFAULT_THRESHOLD
    per_type_thresholds: dict[str, int] = field(default_factory=dict)

    def threshold_for(self, event_type: str) -> int:
        return self.per_type_thresholds.get(event_type, self.default_threshold)


class InMemoryHistoryStore:
    """Event storage kept in memory, in chronological order."""

    def __init__(self) -> None:
        self._events: list[HistoryEvent] = []

    def insert_event(self, event: HistoryEvent) -> None:
        self._events.append(event)

    def fetch_events(
        self,
        entity_id: str,
        since: datetime | None,
        limit: int,
        offset: int,
    ) -> list[HistoryEvent]:
        """Events of one entity at or after ``since``, oldest first, paginated."""
        if limit < 0 or offset < 0:
            raise HistoryError("limit and offset must not be negative")
        matching = sorted(
            (
                event
                for event in self._events
                if event.entity_id == entity_id
                and (since is None or event.timestamp >= since)
            ),
            key=lambda event: event.timestamp,
        )
        return list(islice(matching, offset, offset + limit))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryService:
    """Logs events and looks for bursts of activity in recent history."""

    def __init__(
        self,
        store: InMemoryHistoryStore,
        anomaly_config: AnomalyConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.anomaly_config = anomaly_config if anomaly_config is not None else AnomalyConfig()
        self._clock = clock

    async def log_event(self, event: HistoryEvent) -> None:
        if not event.entity_id:
            raise HistoryError("entity_id must not be empty")
        self.store.insert_event(event)

    async def get_entity_history(
        self,
        entity_id: str,
        since: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[HistoryEvent]:
        return self.store.fetch_events(entity_id, since, limit, offset)

    async def detect_timeline_anomalies(
        self, entity_id: str, window_mins: int
    ) -> list[HistoryEvent]:
        """Events beyond their type's threshold within the last ``window_mins`` minutes."""
        since = self._clock() - timedelta(minutes=window_mins)
        events = await self.get_entity_history(entity_id, since, ANOMALY_FETCH_LIMIT, 0)
        counts: Counter[str] = Counter()
        anomalies = []
        for event in events:
            counts[event.event_type] += 1
            if counts[event.event_type] > self.anomaly_config.threshold_for(event.event_type):
                anomalies.append(event)
        return anomalies