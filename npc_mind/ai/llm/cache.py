"""Thread-safe LRU cache of LLM replies keyed by prompt."""

from __future__ import annotations

from collections import OrderedDict
import threading
from typing import OrderedDict as OrderedDictType


class LLMCache:
    """LRU cache keyed by prompt strings.

    The client is called from the decision worker while the runner may
    inspect it from the tick thread, so every access takes the lock.
    """

    def __init__(self, capacity: int = 256) -> None:
        self.capacity = max(0, capacity)
        self._store: OrderedDictType[str, str] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, prompt: str) -> str | None:
        """Return cached reply for ``prompt`` or ``None``."""

        with self._lock:
            if prompt in self._store:
                self._store.move_to_end(prompt)
                self.hits += 1
                return self._store[prompt]
            self.misses += 1
            return None

    def put(self, prompt: str, reply: str) -> None:
        """Store ``prompt`` → ``reply``, evicting the least recently used."""

        if self.capacity == 0:
            return
        with self._lock:
            if prompt in self._store:
                self._store.move_to_end(prompt)
            elif len(self._store) >= self.capacity:
                self._store.popitem(last=False)
            self._store[prompt] = reply

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, prompt: str) -> bool:  # pragma: no cover - trivial
        return prompt in self._store

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._store)


__all__ = ["LLMCache"]
