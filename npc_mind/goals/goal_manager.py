"""Active goal, FIFO queue of pending goals, and history."""

from __future__ import annotations

from collections import deque
import logging
from typing import Deque, List, Optional

from .goal import Goal, GoalStatus

logger = logging.getLogger(__name__)


class GoalManager:
    """Own the single active goal.

    Only the tick thread mutates a manager; it is not locked.
    """

    def __init__(self) -> None:
        self._current: Optional[Goal] = None
        self._queue: Deque[Goal] = deque()
        self._history: List[Goal] = []

    @property
    def current_goal(self) -> Optional[Goal]:
        return self._current

    def set_goal(self, goal: Goal) -> bool:
        """Make ``goal`` active, demoting an in-progress goal to the queue's back."""

        if goal.is_terminal:
            logger.warning("Refusing to activate finished goal %s", goal)
            return False
        if goal is self._current:
            return True
        if goal in self._queue:
            self._queue.remove(goal)

        previous = self._current
        if previous is not None and previous.status is GoalStatus.IN_PROGRESS:
            previous.status = GoalStatus.PENDING
            self._queue.append(previous)
            logger.info("Goal %s demoted to queue (position %s)", previous.short_id, len(self._queue))

        self._current = goal
        goal.set_status(GoalStatus.IN_PROGRESS)
        logger.info("Active goal: %s", goal)
        return True

    def queue_goal(self, goal: Goal) -> None:
        """Run ``goal`` after everything already queued."""

        if goal.is_terminal or goal is self._current or goal in self._queue:
            return
        goal.status = GoalStatus.PENDING
        self._queue.append(goal)

    def complete_current_goal(self) -> Optional[Goal]:
        return self._finish(GoalStatus.COMPLETED)

    def fail_current_goal(self, reason: str) -> Optional[Goal]:
        if self._current is not None:
            self._current.set_parameter("failReason", reason)
        return self._finish(GoalStatus.FAILED, reason)

    def cancel_current_goal(self) -> Optional[Goal]:
        return self._finish(GoalStatus.CANCELLED)

    def _finish(self, status: GoalStatus, reason: str | None = None) -> Optional[Goal]:
        goal = self._current
        if goal is None:
            return None
        goal.set_status(status)
        self._history.append(goal)
        if reason:
            logger.info("Goal %s %s: %s", goal.short_id, status.value, reason)
        else:
            logger.info("Goal %s %s", goal.short_id, status.value)
        self._current = None
        self._advance()
        return goal

    def _advance(self) -> None:
        if self._queue:
            self.set_goal(self._queue.popleft())

    def all_goals(self) -> List[Goal]:
        """Active goal first, then the queue in order."""

        goals = [self._current] if self._current is not None else []
        goals.extend(self._queue)
        return goals

    def queued_goals(self) -> List[Goal]:
        return list(self._queue)

    def completed_goals(self) -> List[Goal]:
        return list(self._history)

    def clear_all_goals(self) -> None:
        self._current = None
        self._queue.clear()


__all__ = ["GoalManager"]
