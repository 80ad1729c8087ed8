"""Immutable world snapshot handed to the decision pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
import sys
from typing import Optional, Tuple

from .time_manager import now_ms

DAY_LENGTH = 24000

# Sentinel returned by the ``time_since_*`` helpers when the event never happened.
NEVER = sys.maxsize


@dataclass(frozen=True, slots=True)
class Observation:
    """What the character perceives at one moment.

    Timestamps are wall-clock milliseconds; ``0`` means "never".
    """

    nearby_players: Tuple[str, ...] = ()
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    world_time: int = 0
    last_interaction_player: Optional[str] = None
    last_interaction_time_ms: int = 0
    last_action: Optional[str] = None
    last_action_time_ms: int = 0
    taken_at_ms: int = field(default_factory=now_ms, compare=False)

    def __post_init__(self) -> None:
        # Accept any iterable of names but store an immutable, ordered tuple.
        object.__setattr__(self, "nearby_players", tuple(self.nearby_players or ()))
        object.__setattr__(self, "world_time", int(self.world_time) % DAY_LENGTH)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def has_players(self) -> bool:
        return bool(self.nearby_players)

    @property
    def first_player(self) -> Optional[str]:
        return self.nearby_players[0] if self.nearby_players else None

    def is_player_nearby(self, name: str) -> bool:
        return name in self.nearby_players

    def time_since_last_interaction(self, now: int | None = None) -> int:
        """Seconds since the last interaction, or :data:`NEVER`."""

        if self.last_interaction_time_ms == 0:
            return NEVER
        current = self.taken_at_ms if now is None else now
        return max(0, (current - self.last_interaction_time_ms) // 1000)

    def time_since_last_action(self, now: int | None = None) -> int:
        """Seconds since the last action, or :data:`NEVER`."""

        if self.last_action_time_ms == 0:
            return NEVER
        current = self.taken_at_ms if now is None else now
        return max(0, (current - self.last_action_time_ms) // 1000)

    def is_day_time(self) -> bool:
        return 0 <= self.world_time < 12000

    def time_of_day(self) -> str:
        if self.world_time < 6000:
            return "morning"
        if self.world_time < 12000:
            return "noon"
        if self.world_time < 18000:
            return "evening"
        return "night"

    def __str__(self) -> str:
        return (
            f"Observation{{players={list(self.nearby_players)}, "
            f"pos=({self.x:.1f},{self.y:.1f},{self.z:.1f}), time={self.world_time}, "
            f"lastPlayer={self.last_interaction_player}, lastAction={self.last_action}}}"
        )


__all__ = ["Observation", "DAY_LENGTH", "NEVER"]
