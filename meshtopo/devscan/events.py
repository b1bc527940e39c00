"""Diagnostic event stream for discovery runs.

Sessions, the topology builder and transports report progress as
DiscoveryEvent objects to an ``on_event`` callback. The default callback
writes them to the loguru logger.
"""

from __future__ import annotations

from typing import Any, Callable

from loguru import logger

from meshtopo.devscan.models import DiscoveryEvent, EventKind

EventSink = Callable[[DiscoveryEvent], None]

_EVENT_LEVELS: dict[EventKind, str] = {
    EventKind.RUN_STARTED: "INFO",
    EventKind.SCAN_DISPATCHED: "INFO",
    EventKind.SCAN_SKIPPED: "DEBUG",
    EventKind.SCAN_SUCCEEDED: "INFO",
    EventKind.SCAN_FAILED: "WARNING",
    EventKind.SCAN_TIMEOUT: "WARNING",
    EventKind.MALFORMED_ADDRESS: "WARNING",
    EventKind.UNRESOLVED_HOP: "WARNING",
    EventKind.HOP_CYCLE: "WARNING",
    EventKind.REQUEST_SENT: "DEBUG",
    EventKind.RESPONSE_RECEIVED: "DEBUG",
    EventKind.RUN_COMPLETED: "INFO",
}


def _describe(event: DiscoveryEvent) -> str:
    kind = event.kind
    target = f"[{event.address}]" if event.address else event.identifier
    if kind == EventKind.RUN_STARTED:
        return f"Starting devscan from coordinator [{event.address}]"
    if kind == EventKind.SCAN_DISPATCHED:
        return f"Scanning {target}..."
    if kind == EventKind.SCAN_SKIPPED:
        return f"Skipping {target}: already scanned"
    if kind == EventKind.SCAN_SUCCEEDED:
        return f"Scanned {target}: {event.detail}"
    if kind in (EventKind.SCAN_FAILED, EventKind.SCAN_TIMEOUT):
        return f"Failed to scan {target}: {event.detail}"
    if kind == EventKind.MALFORMED_ADDRESS:
        return f"Dropping devscan entry with malformed address: {event.detail}"
    if kind in (EventKind.REQUEST_SENT, EventKind.RESPONSE_RECEIVED):
        return f"{kind.value.replace('_', ' ')} {target} ({event.size} bytes)"
    return f"{kind.value}: {event.detail}"


def log_event(event: DiscoveryEvent) -> None:
    """Default sink: log an event at a level chosen by its kind."""
    logger.log(_EVENT_LEVELS.get(event.kind, "DEBUG"), _describe(event))
    if event.payload:
        logger.debug(event.payload)


def emit(on_event: EventSink | None, kind: EventKind, **fields: Any) -> None:
    """Build an event and hand it to the sink (or the logger if no sink)."""
    event = DiscoveryEvent(kind=kind, **fields)
    (on_event or log_event)(event)
