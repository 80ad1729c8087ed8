"""Interface to whatever actually moves the NPC around the world."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

from ..ai.actions import (
    Action,
    AttackEntity,
    EatFood,
    Follow,
    Idle,
    LookAt,
    MineBlock,
    PickupItem,
    PlaceBlock,
    Respond,
    Wander,
    WalkTo,
)

logger = logging.getLogger(__name__)

# Radius used when an AttackEntity action is turned into a hunt for the nearest mob.
ATTACK_RADIUS = 16


@runtime_checkable
class ActionExecutor(Protocol):
    """High level intents the decision engine can request."""

    # movement
    def walk_to(self, x: float, z: float) -> None: ...
    def follow(self, player_id: str) -> None: ...
    def wander(self) -> None: ...
    def explore(self, radius: int) -> None: ...
    def stop(self) -> None: ...

    # tasks
    def gather_resource(self, kind: str) -> None: ...
    def hunt_animals(self, radius: int) -> None: ...
    def farm_crops(self, radius: int) -> None: ...
    def build_pillar(self, height: int) -> None: ...
    def attack_nearest_mob(self, radius: int) -> None: ...
    def place_block(self, kind: str, x: float, y: float, z: float) -> None: ...

    # self care
    def eat_food(self) -> None: ...
    def pickup_nearby_items(self) -> None: ...

    # queries and per-tick upkeep
    def get_count(self, kind: str) -> int: ...
    def tick(self) -> None: ...
    def is_available(self) -> bool: ...
    def food_level(self) -> int: ...
    def nearest_player(self) -> Optional[str]: ...
    def look_at(self, target_id: str) -> None: ...
    def say(self, message: str) -> None: ...


def dispatch_action(executor: ActionExecutor, action: Action) -> None:
    """Translate one parsed action into executor calls."""

    if isinstance(action, WalkTo):
        executor.walk_to(action.x, action.z)
    elif isinstance(action, Follow):
        executor.follow(action.player_id)
    elif isinstance(action, Wander):
        executor.wander()
    elif isinstance(action, LookAt):
        executor.look_at(action.target_id)
    elif isinstance(action, Respond):
        executor.say(action.message)
    elif isinstance(action, MineBlock):
        # The executor resolves the nearest block of this type.
        executor.gather_resource(action.block_type.upper())
    elif isinstance(action, PlaceBlock):
        executor.place_block(action.block_type, action.x, action.y, action.z)
    elif isinstance(action, AttackEntity):
        executor.attack_nearest_mob(ATTACK_RADIUS)
    elif isinstance(action, EatFood):
        executor.eat_food()
    elif isinstance(action, PickupItem):
        executor.pickup_nearby_items()
    elif isinstance(action, Idle):
        executor.stop()
    else:
        logger.warning("No executor mapping for action %r", action)


__all__ = ["ActionExecutor", "dispatch_action", "ATTACK_RADIUS"]
