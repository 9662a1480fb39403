"""
climaguard.pollution_store — In-process pollution event store.

Design contract:
    - Events live in process memory only; a restart reseeds the two
      reference events.
    - All access goes through a threading.Lock.
    - At most max_events are held (constants.MAX_POLLUTION_EVENTS by
      default); adding beyond that evicts the oldest event.
    - list_events() returns copies; callers never see stored objects.
    - Radius filtering uses planar distance in degrees.
"""

from __future__ import annotations

import math
import threading
import uuid
from collections import deque
from datetime import UTC, datetime, timedelta
from typing import Optional

from climaguard.constants import MAX_POLLUTION_EVENTS
from climaguard.models import PollutionEvent, PollutionEventCreate

DEFAULT_RADIUS_DEG = 1.0


def _seed_events(now: datetime) -> list[PollutionEvent]:
    return [
        PollutionEvent(
            id="poll-1",
            type="plastic",
            location=(-20.0, 57.5),
            severity="medium",
            detected_at=now - timedelta(hours=2),
            affected_area=1.5,
            predicted_spread=[(-20.0, 57.5), (-20.05, 57.55), (-20.1, 57.6)],
            status="detected",
            source="Sentinel-2 satellite imagery",
        ),
        PollutionEvent(
            id="poll-2",
            type="oil_spill",
            location=(-20.2, 57.7),
            severity="high",
            detected_at=now - timedelta(days=1),
            affected_area=3.2,
            predicted_spread=[(-20.2, 57.7), (-20.25, 57.75), (-20.3, 57.8)],
            status="confirmed",
            source="Automated detection system",
        ),
    ]


class PollutionEventStore:
    """Thread-safe bounded queue of PollutionEvent, newest last."""

    def __init__(self, seed: bool = True, max_events: int = MAX_POLLUTION_EVENTS) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._lock = threading.Lock()
        self._max_events = max_events
        self._events: deque[PollutionEvent] = deque(
            _seed_events(datetime.now(UTC)) if seed else (), maxlen=max_events,
        )

    def list_events(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius: float = DEFAULT_RADIUS_DEG,
        status: Optional[str] = None,
    ) -> list[PollutionEvent]:
        with self._lock:
            events = [e.model_copy(deep=True) for e in self._events]
        if lat is not None and lng is not None:
            events = [
                e for e in events
                if math.hypot(e.location[0] - lat, e.location[1] - lng) <= radius
            ]
        if status:
            events = [e for e in events if e.status == status]
        return events

    def add(self, event: PollutionEvent) -> PollutionEvent:
        with self._lock:
            self._events.append(event)
        return event.model_copy(deep=True)

    def create(self, body: PollutionEventCreate) -> PollutionEvent:
        event = PollutionEvent(
            id=f"poll-{uuid.uuid4().hex[:12]}",
            type=body.type,
            location=body.location,
            severity=body.severity,
            detected_at=body.detected_at or datetime.now(UTC),
            affected_area=body.affected_area,
            predicted_spread=body.predicted_spread,
            status=body.status,
            source=body.source,
        )
        return self.add(event)

    def reset(self) -> None:
        with self._lock:
            self._events = deque(_seed_events(datetime.now(UTC)), maxlen=self._max_events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


pollution_store = PollutionEventStore()
