"""
Telemetry events: business events such as "SignupStarted" or "LoginCompleted".

Services collect events while they work; nothing leaves the process until the
request finished without an exception. A request that fails halfway therefore
never reports an event for work that was rolled back.

Dispatch writes one structured record per event to the `telemetry` logger,
which log shipping forwards to whatever analytics backend is configured.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("telemetry")


@dataclass
class TelemetryEvent:
    name: str
    properties: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TelemetryEventsCollector:
    def __init__(self) -> None:
        self._events: list[TelemetryEvent] = []
        self.dispatched = False

    @property
    def collected_events(self) -> list[TelemetryEvent]:
        return list(self._events)

    @property
    def has_events(self) -> bool:
        return bool(self._events)

    def collect_event(self, name: str, **properties: Any) -> None:
        self._events.append(TelemetryEvent(name=name, properties=properties))

    def discard(self) -> None:
        self._events.clear()

    def dispatch(self) -> None:
        for event in self._events:
            logger.info(
                "event=%s properties=%s at=%s",
                event.name,
                event.properties,
                event.timestamp.isoformat(),
            )
        self._events.clear()
        self.dispatched = True


def track_events(collector: TelemetryEventsCollector):
    """
    Yields the collector for the length of a request.
    Events are dispatched only when the endpoint returned normally; any
    exception (HTTPException included) discards them.
    """
    try:
        yield collector
    except Exception:
        collector.discard()
        raise
    else:
        collector.dispatch()


def get_events():
    """Request-scoped collector dependency."""
    yield from track_events(TelemetryEventsCollector())
