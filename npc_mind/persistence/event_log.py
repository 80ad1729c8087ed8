"""Append-only JSON-lines log of LLM traffic and telemetry lines.

Each line is ``{"tick", "event_type", "data"}``. Once the file reaches the
configured retention size it is gzipped next to itself and a fresh file is
started.
"""

from __future__ import annotations

import gzip
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Collection, Dict, Iterator, List, NamedTuple, Optional

from ..config import CONFIG

LLM_REQUEST = "LLM_REQUEST"
LLM_RESPONSE = "LLM_RESPONSE"
TELEMETRY = "TELEMETRY"


class TelemetryRecord(NamedTuple):
    tick: int
    prefix: str
    payload: str


def _log_retention_bytes() -> int:
    """Return log rotation threshold in bytes."""
    return max(1, CONFIG.cache.log_retention_mb) * 1024 * 1024


def _rotate_log(path: Path) -> Path:
    """Compress ``path`` to ``<stem>_<utc stamp><suffix>.gz`` and remove it."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    gz_path = path.with_name(f"{path.stem}_{ts}{path.suffix}.gz")
    with open(path, "rb") as src, gzip.open(gz_path, "wb") as dst:
        shutil.copyfileobj(src, dst)
    path.unlink()
    return gz_path


def rotated_logs(path: str | Path) -> List[Path]:
    """Compressed predecessors of ``path``, oldest first."""
    p = Path(path)
    return sorted(p.parent.glob(f"{p.stem}_*{p.suffix}.gz"))


def append_event(
    dest: str | Path | List[Dict[str, Any]], tick: int, event_type: str, data: Any
) -> None:
    """Append an event to ``dest`` which may be a path or in-memory list."""

    event = {"tick": tick, "event_type": event_type, "data": data}
    if isinstance(dest, list):
        dest.append(event)
        return

    p = Path(dest)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.exists() and p.stat().st_size >= _log_retention_bytes():
        _rotate_log(p)

    with p.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(event, ensure_ascii=False) + "\n")


def iter_events(
    path: str | Path, event_types: Optional[Collection[str]] = None
) -> Iterator[Dict[str, Any]]:
    """Yield events from ``path`` in logged order, optionally only some types.

    Blank and corrupt lines (a crash mid-write) are skipped.
    """

    p = Path(path)
    if not p.exists():
        return

    with p.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            if event_types is not None and event.get("event_type") not in event_types:
                continue
            yield event


def iter_telemetry(
    path: str | Path, prefixes: Optional[Collection[str]] = None
) -> Iterator[TelemetryRecord]:
    """Replay telemetry lines written by ``EventLogSink``."""

    for event in iter_events(path, (TELEMETRY,)):
        data = event.get("data") or {}
        prefix = str(data.get("prefix", ""))
        if prefixes is not None and prefix not in prefixes:
            continue
        yield TelemetryRecord(int(event.get("tick", 0)), prefix, str(data.get("payload", "")))


__all__ = [
    "append_event",
    "iter_events",
    "iter_telemetry",
    "rotated_logs",
    "TelemetryRecord",
    "LLM_REQUEST",
    "LLM_RESPONSE",
    "TELEMETRY",
]
