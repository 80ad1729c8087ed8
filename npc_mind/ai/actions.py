"""Action variants and the parser that turns LLM replies into one of them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import ClassVar, Optional, Union

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    FOLLOW_PLAYER = "FOLLOW_PLAYER"
    WALK_TO = "WALK_TO"
    IDLE = "IDLE"
    LOOK_AT = "LOOK_AT"
    RESPOND = "RESPOND"
    WANDER = "WANDER"
    MINE_BLOCK = "MINE_BLOCK"
    PLACE_BLOCK = "PLACE_BLOCK"
    ATTACK_ENTITY = "ATTACK_ENTITY"
    EAT_FOOD = "EAT_FOOD"
    PICKUP_ITEM = "PICKUP_ITEM"


# ------------------------------------------------------------------
# Action dataclasses
# ------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Follow:
    """Trail a nearby player."""
    player_id: str
    kind: ClassVar[ActionType] = ActionType.FOLLOW_PLAYER

    def __str__(self) -> str:
        return f"FOLLOW({self.player_id})"

@dataclass(frozen=True, slots=True)
class WalkTo:
    """Walk to a horizontal coordinate; height is resolved by the executor."""
    x: float
    z: float
    kind: ClassVar[ActionType] = ActionType.WALK_TO

    def __str__(self) -> str:
        return f"WALK_TO({self.x:.1f}, {self.z:.1f})"

@dataclass(frozen=True, slots=True)
class Idle:
    """Stand still and observe."""
    kind: ClassVar[ActionType] = ActionType.IDLE

    def __str__(self) -> str:
        return "IDLE"

@dataclass(frozen=True, slots=True)
class LookAt:
    """Face a player or entity."""
    target_id: str
    kind: ClassVar[ActionType] = ActionType.LOOK_AT

    def __str__(self) -> str:
        return f"LOOK_AT({self.target_id})"

@dataclass(frozen=True, slots=True)
class Respond:
    """Send a chat message."""
    message: str
    kind: ClassVar[ActionType] = ActionType.RESPOND

    def __str__(self) -> str:
        return f"RESPOND: {self.message}"

@dataclass(frozen=True, slots=True)
class Wander:
    """Move randomly nearby."""
    kind: ClassVar[ActionType] = ActionType.WANDER

    def __str__(self) -> str:
        return "WANDER"

@dataclass(frozen=True, slots=True)
class MineBlock:
    """Break a block. ``(0, 0, 0)`` means "nearest block of this type"."""
    block_type: str
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    kind: ClassVar[ActionType] = ActionType.MINE_BLOCK

    @property
    def needs_resolution(self) -> bool:
        return (self.x, self.y, self.z) == (0.0, 0.0, 0.0)

    def __str__(self) -> str:
        return f"MINE_BLOCK({self.block_type} at {self.x:.1f}, {self.y:.1f}, {self.z:.1f})"

@dataclass(frozen=True, slots=True)
class PlaceBlock:
    """Place a block at a position."""
    block_type: str
    x: float
    y: float
    z: float
    kind: ClassVar[ActionType] = ActionType.PLACE_BLOCK

    def __str__(self) -> str:
        return f"PLACE_BLOCK({self.block_type} at {self.x:.1f}, {self.y:.1f}, {self.z:.1f})"

@dataclass(frozen=True, slots=True)
class AttackEntity:
    """Attack a nearby entity."""
    entity_id: str
    kind: ClassVar[ActionType] = ActionType.ATTACK_ENTITY

    def __str__(self) -> str:
        return f"ATTACK({self.entity_id})"

@dataclass(frozen=True, slots=True)
class EatFood:
    """Eat food from the inventory."""
    kind: ClassVar[ActionType] = ActionType.EAT_FOOD

    def __str__(self) -> str:
        return "EAT_FOOD"

@dataclass(frozen=True, slots=True)
class PickupItem:
    """Pick up a nearby item."""
    item_id: str
    kind: ClassVar[ActionType] = ActionType.PICKUP_ITEM

    def __str__(self) -> str:
        return f"PICKUP({self.item_id})"


Action = Union[
    Follow, WalkTo, Idle, LookAt, Respond, Wander,
    MineBlock, PlaceBlock, AttackEntity, EatFood, PickupItem,
]

# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------
_NUM = r"([-\d.]+)"

_WALK_TO = re.compile(rf"walk\s+to\s+{_NUM}\s+{_NUM}\s*{_NUM}?", re.IGNORECASE)
_FOLLOW = re.compile(r"follow\s+(\w+)", re.IGNORECASE)
_LOOK_AT = re.compile(r"look\s+at\s+(\w+)", re.IGNORECASE)
_SAY = re.compile(r"say\s+(.+?)(?:\n|$)", re.IGNORECASE)
_RESPOND = re.compile(r"respond[:\s]+(.+?)(?:\n|$)", re.IGNORECASE)
_MINE = re.compile(r"mine\s+(\w+)", re.IGNORECASE)
_ATTACK = re.compile(r"attack\s+(\w+)", re.IGNORECASE)
_COORDS = re.compile(rf"{_NUM}[,\s]+{_NUM}")

_IDLE_WORDS = ("idle", "stand still", "do nothing", "wait")
_WANDER_WORDS = ("wander", "explore randomly")


def _walk_from(match: Optional[re.Match[str]]) -> Optional[WalkTo]:
    if match is None:
        return None
    # "X Z", or "X Y Z" where the height is dropped.
    numbers = [group for group in match.groups() if group is not None]
    try:
        return WalkTo(x=float(numbers[0]), z=float(numbers[-1] if len(numbers) > 2 else numbers[1]))
    except ValueError:
        return None


def _message_from(match: Optional[re.Match[str]]) -> Optional[Respond]:
    if match is None:
        return None
    message = match.group(1).strip()
    return Respond(message) if message else None


def parse_action(text: str | None) -> Action:
    """Return the first action recognised in ``text``; :class:`Idle` otherwise.

    Rules are tried in a fixed order and the first match wins. A numeric
    field that fails to convert falls through to the next rule.
    """

    if text is None or not text.strip():
        return Idle()

    trimmed = text.strip()
    lower = trimmed.lower()

    walk = _walk_from(_WALK_TO.search(trimmed))
    if walk is not None:
        return walk

    match = _FOLLOW.search(trimmed)
    if match:
        return Follow(match.group(1))

    match = _LOOK_AT.search(trimmed)
    if match:
        return LookAt(match.group(1))

    said = _message_from(_SAY.search(trimmed)) or _message_from(_RESPOND.search(trimmed))
    if said is not None:
        return said

    match = _MINE.search(trimmed)
    if match:
        return MineBlock(match.group(1))

    match = _ATTACK.search(trimmed)
    if match:
        return AttackEntity(match.group(1))

    if any(word in lower for word in _IDLE_WORDS):
        return Idle()
    if any(word in lower for word in _WANDER_WORDS):
        return Wander()
    if "eat" in lower:
        return EatFood()

    walk = _walk_from(_COORDS.search(trimmed))
    if walk is not None:
        return walk

    logger.debug("No action recognised in %r; defaulting to IDLE", trimmed[:80])
    return Idle()


__all__ = [
    "ActionType", "Action",
    "Follow", "WalkTo", "Idle", "LookAt", "Respond", "Wander",
    "MineBlock", "PlaceBlock", "AttackEntity", "EatFood", "PickupItem",
    "parse_action",
]
