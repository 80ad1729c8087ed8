"""Goals, their steps, and the lifecycle rules both follow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from typing import Any, Dict, List, Optional
import uuid

from ..core.time_manager import now_ms

logger = logging.getLogger(__name__)


class GoalType(str, Enum):
    GATHER_WOOD = "GATHER_WOOD"
    GATHER_STONE = "GATHER_STONE"
    MINE_DIAMONDS = "MINE_DIAMONDS"
    BUILD_STRUCTURE = "BUILD_STRUCTURE"
    EXPLORE_AREA = "EXPLORE_AREA"
    RETURN_HOME = "RETURN_HOME"
    FOLLOW_PLAYER = "FOLLOW_PLAYER"
    HUNT_ANIMALS = "HUNT_ANIMALS"
    FARM_CROPS = "FARM_CROPS"


class GoalStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_GOAL


class StepStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


_TERMINAL_GOAL = frozenset({GoalStatus.COMPLETED, GoalStatus.FAILED, GoalStatus.CANCELLED})


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class GoalStep:
    """Single unit of progress within a goal.

    ``depends_on`` holds step ids. Steps still run strictly in list order;
    the ids are kept for display and for callers that want to check them.
    """

    label: str
    id: str = field(default_factory=_new_id)
    status: StepStatus = StepStatus.PENDING
    depends_on: List[str] = field(default_factory=list)

    def add_dependency(self, step_id: str) -> None:
        if step_id and step_id != self.id and step_id not in self.depends_on:
            self.depends_on.append(step_id)

    def start(self) -> bool:
        """PENDING → IN_PROGRESS. Returns whether the transition happened."""
        if self.status is not StepStatus.PENDING:
            return False
        self.status = StepStatus.IN_PROGRESS
        return True

    def complete(self) -> bool:
        if self.status.is_terminal:
            return False
        self.status = StepStatus.COMPLETED
        return True

    def fail(self) -> bool:
        if self.status.is_terminal:
            return False
        self.status = StepStatus.FAILED
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "status": self.status.value,
            "dependsOn": list(self.depends_on),
        }


def steps_to_json(steps: List[GoalStep]) -> str:
    """Compact JSON array used by the ``GOAL_STEPS`` telemetry message."""

    return json.dumps([s.to_dict() for s in steps], separators=(",", ":"), ensure_ascii=False)


@dataclass(slots=True)
class Goal:
    """A multi-tick directive with an optional ordered list of steps."""

    type: GoalType
    description: str = ""
    id: str = field(default_factory=_new_id)
    status: GoalStatus = GoalStatus.PENDING
    parameters: Dict[str, Any] = field(default_factory=dict)
    created_at: int = field(default_factory=now_ms)
    completed_at: int = 0
    steps: List[GoalStep] = field(default_factory=list)
    current_step_index: int = 0

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def set_status(self, status: GoalStatus, *, at: int | None = None) -> bool:
        """Move to ``status`` unless already terminal.

        The completion timestamp is stamped on the first terminal
        transition only. Returns whether the status changed.
        """

        if self.status.is_terminal:
            if status is not self.status:
                logger.debug("Goal %s is %s; ignoring transition to %s", self.short_id, self.status.value, status.value)
            return False
        self.status = status
        if status.is_terminal and self.completed_at == 0:
            self.completed_at = now_ms() if at is None else at
        return True

    def elapsed_ms(self, now: int | None = None) -> int:
        end = self.completed_at if self.completed_at > 0 else (now_ms() if now is None else now)
        return max(0, end - self.created_at)

    def set_parameter(self, key: str, value: Any) -> None:
        self.parameters[key] = value

    def get_parameter(self, key: str, default: Any = None) -> Any:
        return self.parameters.get(key, default)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def set_steps(self, steps: List[GoalStep]) -> None:
        self.steps = list(steps)
        self.current_step_index = 0

    def current_step(self) -> Optional[GoalStep]:
        if self.current_step_index >= len(self.steps):
            return None
        return self.steps[self.current_step_index]

    def complete_current_step(self) -> Optional[GoalStep]:
        """Mark the step at the cursor COMPLETED and advance by one.

        Does nothing once the cursor is past the last step.
        """

        step = self.current_step()
        if step is None:
            return None
        step.complete()
        self.current_step_index += 1
        return step

    def has_more_steps(self) -> bool:
        return self.current_step_index < len(self.steps)

    @property
    def short_id(self) -> str:
        return self.id[:8]

    def __str__(self) -> str:
        return f"[{self.short_id}] {self.type.value} ({self.status.value}) - {self.description}"


__all__ = ["Goal", "GoalStep", "GoalType", "GoalStatus", "StepStatus", "steps_to_json"]
