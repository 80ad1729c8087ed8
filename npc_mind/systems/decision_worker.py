"""Background thread for blocking LLM work.

The tick thread submits jobs and drains finished results with
:meth:`DecisionWorker.poll_results`; nothing computed here touches goal or
brain state directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import queue
import threading
import time
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

PLAN = "plan"
THINK = "think"
CHAT = "chat"


@dataclass(slots=True)
class DecisionJob:
    """A unit of blocking work. ``key`` ties the result back to its requester."""

    kind: str
    key: str
    fn: Callable[[], Any]
    submitted_at: float = field(default_factory=time.perf_counter)


@dataclass(slots=True)
class DecisionResult:
    kind: str
    key: str
    value: Any = None
    error: Optional[BaseException] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class DecisionWorker:
    """Run :class:`DecisionJob` callables off the tick thread."""

    def __init__(self, name: str = "DecisionWorker") -> None:
        self.name = name
        self._jobs: queue.Queue[Optional[DecisionJob]] = queue.Queue()
        self._results: queue.Queue[DecisionResult] = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def submit(self, kind: str, key: str, fn: Callable[[], Any]) -> DecisionJob:
        job = DecisionJob(kind, key, fn)
        with self._lock:
            self._in_flight += 1
        self._jobs.put(job)
        logger.debug("[%s] Queued %s job %s", self.name, kind, key)
        return job

    @property
    def pending(self) -> int:
        """Jobs submitted whose results have not been collected yet."""
        with self._lock:
            return self._in_flight

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _run_job(self, job: DecisionJob) -> None:
        start = time.perf_counter()
        try:
            value = job.fn()
            result = DecisionResult(job.kind, job.key, value=value)
        except Exception as exc:  # noqa: BLE001 - reported to the tick thread
            logger.error("[%s] %s job %s failed: %s", self.name, job.kind, job.key, exc)
            result = DecisionResult(job.kind, job.key, error=exc)
        result.elapsed_ms = int((time.perf_counter() - start) * 1000)
        self._results.put(result)

    def process_queue_once(self) -> bool:
        """Run one queued job on the calling thread. Returns whether one ran."""

        try:
            job = self._jobs.get_nowait()
        except queue.Empty:
            return False
        if job is None:
            return False
        self._run_job(job)
        return True

    def _loop(self) -> None:
        logger.info("[%s] Worker thread started.", self.name)
        while not self._stop_event.is_set():
            job = self._jobs.get()
            if job is None:
                break
            self._run_job(job)
        logger.info("[%s] Worker thread stopped.", self.name)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name=self.name)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop_event.set()
        self._jobs.put(None)
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("[%s] Worker still busy after %.1fs; leaving it to exit.", self.name, timeout or 0.0)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def poll_results(self) -> List[DecisionResult]:
        """Drain every finished result. Call from the tick thread."""

        results: List[DecisionResult] = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except queue.Empty:
                break
        if results:
            with self._lock:
                self._in_flight = max(0, self._in_flight - len(results))
        return results


__all__ = ["DecisionWorker", "DecisionJob", "DecisionResult", "PLAN", "THINK", "CHAT"]
