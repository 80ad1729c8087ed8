# tests/conftest.py
import os
import sys
from typing import Dict, List, Optional

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


class ScriptedLLM:
    """Returns canned replies in order (the last one repeats) and records prompts."""

    def __init__(self, *replies: str, error: Optional[Exception] = None):
        self.replies: List[str] = list(replies) or [""]
        self.error = error
        self.prompts: List[str] = []

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


class RecordingExecutor:
    """Executor that only remembers what it was asked to do."""

    def __init__(self, players=(), food: int = 20, inventory: Optional[Dict[str, int]] = None):
        self.players = list(players)
        self.food = food
        self.items: Dict[str, int] = dict(inventory or {})
        self.calls: List[tuple] = []
        self.available = True
        self.ticks = 0

    def _rec(self, name, *args):
        self.calls.append((name,) + args)

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    # movement
    def walk_to(self, x, z): self._rec("walk_to", x, z)
    def follow(self, player_id): self._rec("follow", player_id)
    def wander(self): self._rec("wander")
    def explore(self, radius): self._rec("explore", radius)
    def stop(self): self._rec("stop")
    # tasks
    def gather_resource(self, kind): self._rec("gather_resource", kind)
    def hunt_animals(self, radius): self._rec("hunt_animals", radius)
    def farm_crops(self, radius): self._rec("farm_crops", radius)
    def build_pillar(self, height): self._rec("build_pillar", height)
    def attack_nearest_mob(self, radius): self._rec("attack_nearest_mob", radius)
    def place_block(self, kind, x, y, z): self._rec("place_block", kind, x, y, z)
    # self care
    def eat_food(self): self._rec("eat_food")
    def pickup_nearby_items(self): self._rec("pickup_nearby_items")
    # queries
    def get_count(self, kind): return self.items.get(kind, 0)
    def inventory(self): return dict(self.items)
    def tick(self): self.ticks += 1
    def is_available(self): return self.available
    def food_level(self): return self.food
    def nearest_player(self): return self.players[0] if self.players else None
    def look_at(self, target_id): self._rec("look_at", target_id)
    def say(self, message): self._rec("say", message)


@pytest.fixture(autouse=True)
def _no_llm_env(monkeypatch):
    for var in ("NPC_LLM_MODE", "NPC_LLM_ENDPOINT", "NPC_LLM_MODEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def executor():
    return RecordingExecutor()
