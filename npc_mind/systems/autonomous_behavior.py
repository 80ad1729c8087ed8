"""Tick-driven goal pursuit.

Every tick drains the executor's queued intents. Every
``decision_interval`` ticks the active goal (or its current step) is
checked against an inventory or time predicate and the matching intent is
requested again until the predicate holds.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Sequence, Set, Tuple

from ..ai.planning.step_planner import StepPlanner
from ..config import CONFIG, BehaviorConfig
from ..core.time_manager import now_ms
from ..goals.goal import Goal, GoalStatus, GoalStep, GoalType, steps_to_json
from ..goals.goal_manager import GoalManager
from ..telemetry.telemetry import ERROR, GOAL_STEPS, INVENTORY, Telemetry, emit
from .decision_worker import PLAN, DecisionResult, DecisionWorker
from .executor import ActionExecutor

logger = logging.getLogger(__name__)

EXPLORING = "EXPLORING"
PLAN_PENDING = "planPending"


# ------------------------------------------------------------------
# Completion rules
# ------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Quota:
    """Hold ``amount`` of any of ``items``; otherwise request ``work``."""

    items: Tuple[str, ...]
    amount: int
    work: str
    arg: object

    def satisfied(self, executor: ActionExecutor) -> bool:
        return any(executor.get_count(item) >= self.amount for item in self.items)

    def request(self, executor: ActionExecutor) -> None:
        if self.work == "gather":
            executor.gather_resource(str(self.arg))
        elif self.work == "hunt":
            executor.hunt_animals(int(self.arg))
        elif self.work == "farm":
            executor.farm_crops(int(self.arg))


QUOTAS: Dict[GoalType, Quota] = {
    GoalType.GATHER_WOOD: Quota(("OAK_LOG",), 64, "gather", "WOOD"),
    GoalType.GATHER_STONE: Quota(("STONE",), 64, "gather", "STONE"),
    GoalType.MINE_DIAMONDS: Quota(("DIAMOND",), 10, "gather", "DIAMONDS"),
    GoalType.HUNT_ANIMALS: Quota(("COOKED_BEEF", "COOKED_PORKCHOP"), 32, "hunt", 30),
    GoalType.FARM_CROPS: Quota(("WHEAT",), 32, "farm", 20),
    GoalType.BUILD_STRUCTURE: Quota(("OAK_LOG",), 32, "gather", "WOOD"),
}

# Step handlers
SCOUT = "scout"        # explore(radius) once, then done
QUOTA = "quota"        # done once the goal's quota holds
TIMED = "timed"        # explore until the goal is old enough
BUILD = "build"        # build a pillar once, then done
FOLLOW = "follow"      # follow the nearest player, never done
DONE = "done"          # nothing to do


@dataclass(frozen=True, slots=True)
class StepRule:
    keywords: Tuple[str, ...]
    handler: str
    radius: int = 30

    def matches(self, label: str) -> bool:
        return any(word in label for word in self.keywords)


# First matching rule wins; labels are compared lower-cased.
STEP_RULES: Dict[GoalType, Sequence[StepRule]] = {
    GoalType.GATHER_WOOD: (
        StepRule(("navigate", "forest"), SCOUT, 30),
        StepRule(("collect", "logs"), QUOTA),
        StepRule(("return", "base"), DONE),
    ),
    GoalType.GATHER_STONE: (
        StepRule(("mine", "blocks"), QUOTA),
        StepRule(("find", "outcrop", "cave"), SCOUT, 30),
    ),
    GoalType.MINE_DIAMONDS: (
        StepRule(("locate", "cave"), SCOUT, 40),
        StepRule(("descend", "diamond level"), SCOUT, 30),
        StepRule(("mine", "diamond"), QUOTA),
    ),
    GoalType.HUNT_ANIMALS: (
        StepRule(("locate", "animals"), SCOUT, 20),
        StepRule(("hunt", "collect", "food"), QUOTA),
    ),
    GoalType.FARM_CROPS: (
        StepRule(("find", "farmable"), SCOUT, 20),
        StepRule(("harvest", "wheat", "crops"), QUOTA),
    ),
    GoalType.EXPLORE_AREA: (
        StepRule(("explore",), TIMED),
    ),
    GoalType.BUILD_STRUCTURE: (
        StepRule(("gather", "logs"), QUOTA),
        StepRule(("build", "pillar"), BUILD),
    ),
    GoalType.FOLLOW_PLAYER: (
        StepRule(("find", "nearest player"), SCOUT, 20),
        StepRule(("follow",), FOLLOW),
    ),
}
DEFAULT_STEP_RULE = StepRule((), SCOUT, 30)

TIMED_EXPLORE_RADIUS = 50
PILLAR_HEIGHT = 5
SEARCH_RADIUS = 20


def rule_for(goal_type: GoalType, label: str) -> StepRule:
    text = label.lower()
    for rule in STEP_RULES.get(goal_type, ()):
        if rule.matches(text):
            return rule
    return DEFAULT_STEP_RULE


class AutonomousAIBehavior:
    """Pursue goals from :class:`GoalManager` through an executor.

    Owns the goal manager; only the thread calling :meth:`tick` mutates it.
    Planning requests run on ``worker`` when one is given.
    """

    def __init__(
        self,
        executor: ActionExecutor,
        goal_manager: GoalManager | None = None,
        *,
        planner: StepPlanner | None = None,
        worker: DecisionWorker | None = None,
        telemetry: Telemetry | None = None,
        config: BehaviorConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        cfg = config or CONFIG.behavior
        self.executor = executor
        self.goal_manager = goal_manager or GoalManager()
        self.planner = planner or StepPlanner()
        self.worker = worker
        self.telemetry = telemetry
        self.clock = clock
        self.decision_interval = max(1, cfg.decision_interval)
        self.hunger_threshold = cfg.hunger_threshold
        self.explore_radius = cfg.explore_radius
        self.explore_duration_ms = int(cfg.explore_duration_seconds * 1000)
        self.tick_counter = 0
        self.decisions = 0
        # Goal ids with a plan job outstanding.
        self._planning: Set[str] = set()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def tick(self) -> None:
        """Per-tick upkeep; a decision every ``decision_interval`` ticks."""

        self.tick_counter += 1
        try:
            self.executor.tick()
        except Exception as exc:  # noqa: BLE001 - upkeep must not stop the loop
            logger.exception("Executor tick failed")
            emit(self.telemetry, ERROR, f"Executor tick failed: {exc}")

        if self.worker is not None:
            for result in self.worker.poll_results():
                self.handle_result(result)

        if self.tick_counter >= self.decision_interval:
            self.tick_counter = 0
            self.decide()

    def decide(self) -> None:
        try:
            if not self.executor.is_available():
                logger.warning("NPC entity unavailable; skipping decision")
                return
            self.decisions += 1
            self._pursue_goal()
            self._maintain()
            self._report_inventory()
        except Exception as exc:  # noqa: BLE001 - the tick driver must survive
            logger.exception("Decision failed")
            emit(self.telemetry, ERROR, f"Decision failed: {exc}")

    def _pursue_goal(self) -> None:
        goal = self.goal_manager.current_goal
        if goal is None:
            logger.info("No goal - exploring")
            self.executor.explore(self.explore_radius)
            return

        if goal.get_parameter(PLAN_PENDING):
            if goal.id not in self._planning:
                # Its first plan was discarded while the goal sat in the queue.
                self._submit_plan(goal)
            logger.debug("Waiting for plan of goal %s", goal.short_id)
            return

        if not goal.steps:
            self._execute_simple_goal(goal)
            return

        step = goal.current_step()
        if step is None:
            logger.info("All steps completed for goal %s", goal.type.value)
            self.goal_manager.complete_current_goal()
            return

        if step.start():
            logger.info("Starting step %s: %s", goal.current_step_index + 1, step.label)
            self._step_update(step)
        self._execute_step(goal, step)

    def _maintain(self) -> None:
        if self.executor.food_level() < self.hunger_threshold:
            logger.info("Eating food...")
            self.executor.eat_food()
        self.executor.pickup_nearby_items()

    def _report_inventory(self) -> None:
        if self.telemetry is None:
            return
        inventory = getattr(self.executor, "inventory", None)
        if not callable(inventory):
            return
        items = inventory()
        emit(self.telemetry, INVENTORY, ",".join(f"{k}={v}" for k, v in items.items()))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _explore_expired(self, goal: Goal) -> bool:
        return goal.elapsed_ms(self.clock()) > self.explore_duration_ms

    def _follow_player(self) -> None:
        player = self.executor.nearest_player()
        if player is None:
            logger.debug("No player to follow; searching")
            self.executor.explore(SEARCH_RADIUS)
            return
        self.executor.follow(player)

    def _complete_step(self, goal: Goal) -> None:
        step = goal.complete_current_step()
        if step is not None:
            logger.info("Step complete: %s", step.label)
            self._step_update(step)

    def _execute_step(self, goal: Goal, step: GoalStep) -> None:
        rule = rule_for(goal.type, step.label)
        quota = QUOTAS.get(goal.type)

        if rule.handler == SCOUT:
            self.executor.explore(rule.radius)
            self._complete_step(goal)
        elif rule.handler == QUOTA and quota is not None:
            if quota.satisfied(self.executor):
                self._complete_step(goal)
            else:
                quota.request(self.executor)
        elif rule.handler == TIMED:
            if self._explore_expired(goal):
                self._complete_step(goal)
            else:
                self.executor.explore(TIMED_EXPLORE_RADIUS)
        elif rule.handler == BUILD:
            self.executor.build_pillar(PILLAR_HEIGHT)
            self._complete_step(goal)
        elif rule.handler == FOLLOW:
            self._follow_player()
        else:
            self._complete_step(goal)

    def _execute_simple_goal(self, goal: Goal) -> None:
        logger.info("Executing goal: %s", goal.type.value)
        quota = QUOTAS.get(goal.type)

        if goal.type is GoalType.BUILD_STRUCTURE and quota is not None:
            if quota.satisfied(self.executor):
                self.executor.build_pillar(PILLAR_HEIGHT)
                logger.info("Structure built!")
                self.goal_manager.complete_current_goal()
            else:
                logger.info("Gathering materials for building...")
                quota.request(self.executor)
        elif quota is not None:
            if quota.satisfied(self.executor):
                logger.info("%s goal completed!", goal.type.value)
                self.goal_manager.complete_current_goal()
            else:
                quota.request(self.executor)
        elif goal.type is GoalType.EXPLORE_AREA:
            if self._explore_expired(goal):
                logger.info("Exploration complete!")
                self.goal_manager.complete_current_goal()
            else:
                self.executor.explore(TIMED_EXPLORE_RADIUS)
        elif goal.type is GoalType.FOLLOW_PLAYER:
            self._follow_player()
        else:
            self.executor.explore(30)

    def _step_update(self, step: GoalStep) -> None:
        if self.telemetry is not None:
            self.telemetry.step_update(step.id, step.status.value)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------
    def set_goal(self, goal_type: GoalType, description: str = "") -> Goal:
        goal = Goal(goal_type, description)
        self.goal_manager.set_goal(goal)
        logger.info("New goal: %s", goal_type.value)
        return goal

    def set_goal_with_steps(self, goal_type: GoalType, description: str, steps: List[GoalStep]) -> Goal:
        goal = Goal(goal_type, description)
        goal.set_steps(steps)
        self.goal_manager.set_goal(goal)
        logger.info("New goal: %s with %s steps", goal_type.value, len(steps))
        emit(self.telemetry, GOAL_STEPS, steps_to_json(goal.steps))
        return goal

    def request_goal(self, goal_type: GoalType, description: str = "") -> Goal:
        """Activate a goal now and plan its steps in the background.

        Without a worker the plan is computed inline.
        """

        if self.worker is None:
            return self.set_goal_with_steps(goal_type, description, self.planner.plan_for(goal_type))

        goal = self.set_goal(goal_type, description)
        goal.set_parameter(PLAN_PENDING, True)
        self._submit_plan(goal)
        return goal

    def _submit_plan(self, goal: Goal) -> None:
        if self.worker is None:
            return
        planner = self.planner
        goal_type = goal.type
        self._planning.add(goal.id)
        self.worker.submit(PLAN, goal.id, lambda: planner.plan_for(goal_type))

    def handle_result(self, result: DecisionResult) -> bool:
        """Apply a finished plan if its goal is still the active one."""

        if result.kind != PLAN:
            return False
        self._planning.discard(result.key)
        goal = self.goal_manager.current_goal
        if goal is None or goal.id != result.key:
            logger.info("Discarding plan for superseded goal %s", result.key[:8])
            return False

        goal.set_parameter(PLAN_PENDING, False)
        steps = result.value if result.ok else None
        if not steps:
            if result.error is not None:
                emit(self.telemetry, ERROR, f"Planning failed: {result.error}")
            steps = StepPlanner.fallback_plan(goal.type)
        goal.set_steps(list(steps))
        logger.info("Plan ready for %s: %s steps (%sms)", goal.type.value, len(goal.steps), result.elapsed_ms)
        emit(self.telemetry, GOAL_STEPS, steps_to_json(goal.steps))
        return True

    def get_status(self) -> str:
        goal = self.goal_manager.current_goal
        if goal is None:
            return EXPLORING
        return f"GOAL: {goal.type.value} ({goal.status.value})"

    @property
    def goal_in_progress(self) -> bool:
        goal = self.goal_manager.current_goal
        return goal is not None and goal.status is GoalStatus.IN_PROGRESS


__all__ = [
    "AutonomousAIBehavior", "Quota", "StepRule", "QUOTAS", "STEP_RULES",
    "DEFAULT_STEP_RULE", "rule_for", "EXPLORING",
]
