"""Line-oriented telemetry: ``PREFIX:payload``, one message per line.

Delivery is fire-and-forget. Nothing here ever raises into the decision
path; a sink that fails is logged and otherwise ignored.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Protocol, Tuple

from ..persistence.event_log import TELEMETRY, TelemetryRecord, append_event, iter_telemetry

logger = logging.getLogger(__name__)

THINKING = "THINKING"
LLM_RESPONSE = "LLM_RESPONSE"
ACTION = "ACTION"
GOAL_STEPS = "GOAL_STEPS"
GOAL_STEP_UPDATE = "GOAL_STEP_UPDATE"
ERROR = "ERROR"
RESPONSE_TIME = "RESPONSE_TIME"
TICK = "TICK"
OBSERVATION = "OBSERVATION"
POSITION = "POSITION"
PLAYERS = "PLAYERS"
INVENTORY = "INVENTORY"
CHAT = "CHAT"

PREFIXES = (
    THINKING, LLM_RESPONSE, ACTION, GOAL_STEPS, GOAL_STEP_UPDATE, ERROR,
    RESPONSE_TIME, TICK, OBSERVATION, POSITION, PLAYERS, INVENTORY, CHAT,
)


class TelemetrySink(Protocol):
    def send(self, line: str) -> None: ...


def format_line(prefix: str, payload: Any) -> str:
    """Return ``PREFIX:payload`` with newlines escaped so it stays one line."""

    text = "" if payload is None else str(payload)
    text = text.replace("\\", "\\\\").replace("\r", "").replace("\n", "\\n")
    return f"{prefix}:{text}"


def parse_line(line: str) -> Tuple[str, str]:
    """Split a telemetry line back into ``(prefix, payload)``."""

    prefix, _, payload = line.rstrip("\n").partition(":")
    out: List[str] = []
    chars = iter(payload)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append("\n" if nxt == "n" else nxt)
        else:
            out.append(ch)
    return prefix, "".join(out)


class ListSink:
    """Keep every line in memory."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def send(self, line: str) -> None:
        self.lines.append(line)

    def messages(self, prefix: str) -> List[str]:
        return [parse_line(line)[1] for line in self.lines if line.startswith(prefix + ":")]


class EventLogSink:
    """Persist telemetry lines as ``TELEMETRY`` events in a JSON-lines log."""

    def __init__(self, path: str | Path, tick_source: Callable[[], int] | None = None) -> None:
        self.path = Path(path)
        self._tick_source = tick_source or (lambda: 0)

    def send(self, line: str) -> None:
        prefix, payload = parse_line(line)
        append_event(self.path, self._tick_source(), TELEMETRY, {"prefix": prefix, "payload": payload})

    def records(self, prefix: str | None = None) -> List[TelemetryRecord]:
        return list(iter_telemetry(self.path, None if prefix is None else (prefix,)))

    def messages(self, prefix: str) -> List[str]:
        return [rec.payload for rec in self.records(prefix)]


class Telemetry:
    """Thread-safe, never-raising front end over zero or more sinks."""

    def __init__(self, sinks: Iterable[TelemetrySink] | TelemetrySink | None = None) -> None:
        if sinks is None:
            self._sinks: List[TelemetrySink] = []
        elif hasattr(sinks, "send"):
            self._sinks = [sinks]  # type: ignore[list-item]
        else:
            self._sinks = list(sinks)  # type: ignore[arg-type]
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return bool(self._sinks)

    def add_sink(self, sink: TelemetrySink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def send(self, prefix: str, payload: Any = "") -> None:
        line = format_line(prefix, payload)
        with self._lock:
            for sink in self._sinks:
                try:
                    sink.send(line)
                except Exception as exc:  # noqa: BLE001 - delivery is best effort
                    logger.debug("Telemetry sink %s dropped %s: %s", type(sink).__name__, prefix, exc)

    # ------------------------------------------------------------------
    # Vocabulary helpers
    # ------------------------------------------------------------------
    def step_update(self, step_id: str, status: str) -> None:
        self.send(GOAL_STEP_UPDATE, json.dumps({"id": step_id, "status": status}, separators=(",", ":")))

    def position(self, x: float, y: float, z: float) -> None:
        self.send(POSITION, f"{x:.1f}, {y:.1f}, {z:.1f}")


def emit(telemetry: Optional[Telemetry], prefix: str, payload: Any = "") -> None:
    """Send through ``telemetry`` if one is attached."""

    if telemetry is not None:
        telemetry.send(prefix, payload)


__all__ = [
    "Telemetry", "TelemetrySink", "ListSink", "EventLogSink",
    "format_line", "parse_line", "emit", "PREFIXES",
    "THINKING", "LLM_RESPONSE", "ACTION", "GOAL_STEPS", "GOAL_STEP_UPDATE",
    "ERROR", "RESPONSE_TIME", "TICK", "OBSERVATION", "POSITION", "PLAYERS", "INVENTORY", "CHAT",
]
