"""goals package."""

from .goal import Goal, GoalStatus, GoalStep, GoalType, StepStatus, steps_to_json
from .goal_manager import GoalManager

__all__ = ["Goal", "GoalManager", "GoalStatus", "GoalStep", "GoalType", "StepStatus", "steps_to_json"]
