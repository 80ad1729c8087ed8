"""In-process stand-in for a game server, used by the runner and tests.

Intents are queued and drained by :meth:`SimulatedExecutor.tick`, one per
tick, mirroring how a real server applies movement and block changes on
its own clock. Gathering simply adds items to the inventory.
"""

from __future__ import annotations

from collections import deque
import logging
import math
import random
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

from ..core.observation import Observation
from ..core.time_manager import now_ms

logger = logging.getLogger(__name__)

MAX_FOOD_LEVEL = 20
# Ticks between one point of hunger.
HUNGER_TICKS = 200
# Recent intents kept for inspection; older ones are dropped.
CALL_HISTORY = 256
DAY_LENGTH = 24000

# What one gather call yields for each resource kind.
RESOURCE_YIELDS: Dict[str, Tuple[str, int]] = {
    "WOOD": ("OAK_LOG", 4),
    "LOG": ("OAK_LOG", 4),
    "OAK_LOG": ("OAK_LOG", 4),
    "STONE": ("STONE", 8),
    "DIAMOND": ("DIAMOND", 1),
    "DIAMONDS": ("DIAMOND", 1),
    "IRON": ("IRON_ORE", 2),
    "COAL": ("COAL", 3),
}
HUNT_YIELD = ("COOKED_BEEF", 2)
FARM_YIELD = ("WHEAT", 4)
FOODS = ("APPLE", "BREAD", "COOKED_BEEF", "COOKED_CHICKEN", "COOKED_PORKCHOP")

Intent = Tuple[str, Callable[[], None]]


class SimulatedExecutor:
    """Minimal world: one NPC, an inventory and some named players."""

    def __init__(
        self,
        *,
        players: Sequence[str] = (),
        position: Tuple[float, float, float] = (0.0, 64.0, 0.0),
        food_level: int = MAX_FOOD_LEVEL,
        world_time: int = 0,
        seed: int | None = None,
    ) -> None:
        self.players: List[str] = list(players)
        self.x, self.y, self.z = position
        self._food_level = food_level
        self.world_time = world_time % DAY_LENGTH
        self.available = True
        self.inventory_items: Dict[str, int] = {}
        self.calls: Deque[Tuple[str, tuple]] = deque(maxlen=CALL_HISTORY)
        self.chat: Deque[str] = deque(maxlen=CALL_HISTORY)
        self.following: Optional[str] = None
        self.last_action = "Initialized"
        self.last_action_time_ms = 0
        self.last_interaction_player: Optional[str] = None
        self.last_interaction_time_ms = 0
        self._queue: Deque[Intent] = deque()
        self._ticks = 0
        self._rng = random.Random(seed)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        self.last_action = f"{name}{args if args else ''}"
        self.last_action_time_ms = now_ms()
        logger.debug("Intent %s%s", name, args)

    def _enqueue(self, name: str, effect: Callable[[], None], *args: object) -> None:
        self._record(name, *args)
        self._queue.append((name, effect))

    def _move(self, x: float, z: float) -> None:
        self.x, self.z = float(x), float(z)

    def _move_by(self, radius: float) -> None:
        angle = self._rng.uniform(0.0, 2.0 * math.pi)
        distance = self._rng.uniform(0.0, max(0.0, float(radius)))
        self._move(self.x + math.cos(angle) * distance, self.z + math.sin(angle) * distance)

    def add_item(self, kind: str, amount: int = 1) -> None:
        self.inventory_items[kind] = self.inventory_items.get(kind, 0) + amount

    def remove_item(self, kind: str, amount: int = 1) -> bool:
        held = self.inventory_items.get(kind, 0)
        if held < amount:
            return False
        if held == amount:
            del self.inventory_items[kind]
        else:
            self.inventory_items[kind] = held - amount
        return True

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    def walk_to(self, x: float, z: float) -> None:
        self.following = None
        self._enqueue("walk_to", lambda: self._move(x, z), x, z)

    def follow(self, player_id: str) -> None:
        def effect() -> None:
            self.following = player_id if player_id in self.players else None

        self._enqueue("follow", effect, player_id)

    def wander(self) -> None:
        self._enqueue("wander", lambda: self._move_by(10))

    def explore(self, radius: int) -> None:
        self._enqueue("explore", lambda: self._move_by(radius), radius)

    def stop(self) -> None:
        self._record("stop")
        self._queue.clear()
        self.following = None

    def look_at(self, target_id: str) -> None:
        self._record("look_at", target_id)

    def say(self, message: str) -> None:
        self._record("say", message)
        self.chat.append(message)
        logger.info("<%s> %s", "npc", message)

    def record_interaction(self, player: str, at_ms: int | None = None) -> None:
        """Remember that ``player`` just talked to the NPC."""
        self.last_interaction_player = player
        self.last_interaction_time_ms = now_ms() if at_ms is None else at_ms

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def gather_resource(self, kind: str) -> None:
        item, amount = RESOURCE_YIELDS.get(kind.upper(), (kind.upper(), 1))
        self._enqueue("gather_resource", lambda: self.add_item(item, amount), kind)

    def hunt_animals(self, radius: int) -> None:
        item, amount = HUNT_YIELD
        self._enqueue("hunt_animals", lambda: self.add_item(item, amount), radius)

    def farm_crops(self, radius: int) -> None:
        item, amount = FARM_YIELD
        self._enqueue("farm_crops", lambda: self.add_item(item, amount), radius)

    def build_pillar(self, height: int) -> None:
        def effect() -> None:
            for _ in range(height):
                if not self.remove_item("OAK_LOG"):
                    break
            self.y += height

        self._enqueue("build_pillar", effect, height)

    def attack_nearest_mob(self, radius: int) -> None:
        self._enqueue("attack_nearest_mob", lambda: None, radius)

    def place_block(self, kind: str, x: float, y: float, z: float) -> None:
        self._enqueue("place_block", lambda: self.remove_item(kind.upper()), kind, x, y, z)

    # ------------------------------------------------------------------
    # Self care
    # ------------------------------------------------------------------
    def eat_food(self) -> None:
        def effect() -> None:
            for food in FOODS:
                if self.remove_item(food):
                    self._food_level = min(MAX_FOOD_LEVEL, self._food_level + 6)
                    return
            logger.debug("Nothing to eat")

        self._enqueue("eat_food", effect)

    def pickup_nearby_items(self) -> None:
        self._record("pickup_nearby_items")

    # ------------------------------------------------------------------
    # Queries and upkeep
    # ------------------------------------------------------------------
    def get_count(self, kind: str) -> int:
        return self.inventory_items.get(kind.upper(), 0)

    def inventory(self) -> Dict[str, int]:
        return dict(self.inventory_items)

    def food_level(self) -> int:
        return self._food_level

    def is_available(self) -> bool:
        return self.available

    def nearest_player(self) -> Optional[str]:
        return self.players[0] if self.players else None

    def tick(self) -> None:
        """Apply at most one queued intent and advance the world clock."""

        self._ticks += 1
        self.world_time = (self.world_time + 1) % DAY_LENGTH
        if self._ticks % HUNGER_TICKS == 0 and self._food_level > 0:
            self._food_level -= 1
        if self._queue:
            name, effect = self._queue.popleft()
            effect()
            logger.debug("Applied %s", name)

    def pending_intents(self) -> int:
        return len(self._queue)

    def observe(self) -> Optional[Observation]:
        """Snapshot for the brain, or ``None`` when the NPC is gone."""

        if not self.available:
            return None
        return Observation(
            nearby_players=tuple(self.players),
            x=self.x,
            y=self.y,
            z=self.z,
            world_time=self.world_time,
            last_interaction_player=self.last_interaction_player,
            last_interaction_time_ms=self.last_interaction_time_ms,
            last_action=self.last_action,
            last_action_time_ms=self.last_action_time_ms,
        )


__all__ = ["SimulatedExecutor", "RESOURCE_YIELDS", "MAX_FOOD_LEVEL", "CALL_HISTORY"]
