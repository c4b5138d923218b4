# cartstore/events.py
# One-way notifications published after a write has been committed.

from typing import Any, Dict, List, Protocol, Tuple

from .logs import get_logger

log = get_logger("events")


class EventSink(Protocol):
    def publish(self, event: str, payload: Dict[str, Any]) -> None: ...


class NullEventSink:
    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        pass


class LoggingEventSink:
    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        log.info("event", event_name=event, **payload)


class RecordingEventSink:
    """Keeps every published event in memory; handy for tests and demos."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))


def notify(sink: EventSink, event: str, payload: Dict[str, Any]) -> None:
    try:
        sink.publish(event, payload)
    except Exception as e:
        log.warning("event_sink_failed", event_name=event, error=str(e))
