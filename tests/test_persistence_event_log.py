from pathlib import Path
import gzip
import json

from npc_mind.persistence.event_log import TelemetryRecord, append_event, iter_events, iter_telemetry
import npc_mind.persistence.event_log as evlog


def test_append_and_iter_events(tmp_path: Path) -> None:
    log = tmp_path / "events.jsonl"
    append_event(log, 1, "LLM_REQUEST", {"prompt": "hi"})
    append_event(log, 2, "LLM_RESPONSE", {"response": "Wander"})
    events = list(iter_events(log))
    assert events == [
        {"tick": 1, "event_type": "LLM_REQUEST", "data": {"prompt": "hi"}},
        {"tick": 2, "event_type": "LLM_RESPONSE", "data": {"response": "Wander"}},
    ]


def test_append_to_list() -> None:
    events = []
    append_event(events, 3, "TELEMETRY", {"prefix": "ACTION", "payload": "WANDER"})
    assert events == [{"tick": 3, "event_type": "TELEMETRY", "data": {"prefix": "ACTION", "payload": "WANDER"}}]


def test_append_creates_parent_dirs(tmp_path: Path) -> None:
    log = tmp_path / "nested" / "dir" / "events.jsonl"
    append_event(log, 0, "TELEMETRY", {})
    assert log.exists()


def test_iter_events_missing_file(tmp_path: Path) -> None:
    path = tmp_path / "missing.jsonl"
    assert list(iter_events(path)) == []


def test_iter_events_skips_corrupt_lines(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text('{"tick": 1, "event_type": "x", "data": {}}\nnot json\n\n', encoding="utf-8")
    assert [e["tick"] for e in iter_events(path)] == [1]


def test_log_rotation(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "events.jsonl"
    monkeypatch.setattr(evlog, "_log_retention_bytes", lambda: 100)
    for i in range(3):
        append_event(path, i, "test", {"n": i})

    gz_files = [p for p in tmp_path.iterdir() if p.suffix == ".gz"]
    assert len(gz_files) == 1
    with gzip.open(gz_files[0], "rt", encoding="utf-8") as fh:
        rotated = [json.loads(l) for l in fh if l.strip()]
    assert [e["tick"] for e in rotated] == [0, 1]
    remaining = list(iter_events(path))
    assert len(remaining) == 1 and remaining[0]["tick"] == 2


def test_iter_events_filters_by_type(tmp_path: Path) -> None:
    log = tmp_path / "events.jsonl"
    append_event(log, 1, "LLM_REQUEST", {"prompt": "hi"})
    append_event(log, 2, "TELEMETRY", {"prefix": "ACTION", "payload": "IDLE"})
    assert [e["tick"] for e in iter_events(log, ("LLM_REQUEST",))] == [1]


def test_iter_telemetry_skips_llm_traffic(tmp_path: Path) -> None:
    log = tmp_path / "events.jsonl"
    append_event(log, 1, "LLM_REQUEST", {"prompt": "hi"})
    append_event(log, 2, "TELEMETRY", {"prefix": "ACTION", "payload": "WANDER"})
    append_event(log, 3, "TELEMETRY", {"prefix": "ERROR", "payload": "boom"})
    assert list(iter_telemetry(log)) == [
        TelemetryRecord(2, "ACTION", "WANDER"),
        TelemetryRecord(3, "ERROR", "boom"),
    ]
    assert [r.payload for r in iter_telemetry(log, {"ERROR"})] == ["boom"]


def test_rotated_logs_lists_archives(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "events.jsonl"
    assert evlog.rotated_logs(path) == []
    monkeypatch.setattr(evlog, "_log_retention_bytes", lambda: 10)
    append_event(path, 0, "test", {})
    append_event(path, 1, "test", {})
    (archive,) = evlog.rotated_logs(path)
    assert archive.name.startswith("events_") and archive.name.endswith(".jsonl.gz")
