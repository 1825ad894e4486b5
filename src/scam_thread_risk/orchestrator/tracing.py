"""Trace events recorded while a thread is analyzed."""

from __future__ import annotations

from typing import Any

TraceEvent = dict[str, Any]


def make_event(stage: str, status: str, message: str, data: dict[str, Any] | None = None) -> TraceEvent:
    payload: TraceEvent = {
        "stage": stage,
        "status": status,
        "message": message,
    }
    if data:
        payload["data"] = data
    return payload


class TraceLog:
    """Ordered event list; each ``record`` also returns the event for streaming."""

    def __init__(self) -> None:
        self.events: list[TraceEvent] = []

    def record(self, stage: str, status: str, message: str, data: dict[str, Any] | None = None) -> TraceEvent:
        event = make_event(stage, status, message, data)
        self.events.append(event)
        return event

    def stages(self) -> list[str]:
        return [str(event.get("stage", "")) for event in self.events]
