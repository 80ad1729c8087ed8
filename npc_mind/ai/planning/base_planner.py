from __future__ import annotations

"""Abstract planner interface."""

from abc import ABC, abstractmethod
from typing import List

from ...goals.goal import GoalStep, GoalType


class BasePlanner(ABC):
    """Base class for planning algorithms."""

    @abstractmethod
    def plan_for(self, goal_type: GoalType) -> List[GoalStep]:
        """Return the ordered steps for ``goal_type``."""
        raise NotImplementedError


__all__ = ["BasePlanner"]
