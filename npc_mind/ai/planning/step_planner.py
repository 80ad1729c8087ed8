from __future__ import annotations

"""LLM-assisted goal decomposition with a static fallback plan."""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .base_planner import BasePlanner
from .tolerant_json import balanced_span, quoted_list, quoted_value, split_objects
from ...goals.goal import GoalStep, GoalType

logger = logging.getLogger(__name__)

AskFn = Callable[[str], str]

PLAN_PROMPT = (
    "You are planning discrete Minecraft steps for an autonomous NPC. "
    "Return STRICT JSON array of objects with fields: label (string), dependsOn (array of labels). "
    'No prose. Example: [{"label":"Navigate to forest","dependsOn":[]},'
    '{"label":"Collect 64 oak logs","dependsOn":["Navigate to forest"]}]. '
    "Goal: {goal}"
)

# Each entry is a chain: every step depends on the one before it.
FALLBACK_PLANS: Dict[GoalType, Tuple[str, ...]] = {
    GoalType.GATHER_WOOD: ("Navigate to forest area", "Collect 64 oak logs", "Return to base"),
    GoalType.GATHER_STONE: ("Find stone outcrop or cave entrance", "Mine 64 stone blocks"),
    GoalType.MINE_DIAMONDS: ("Locate cave system", "Descend to diamond level", "Mine 10 diamond ore"),
    GoalType.HUNT_ANIMALS: ("Locate animals in vicinity", "Hunt and collect 32 food"),
    GoalType.FARM_CROPS: ("Find farmable crop area", "Harvest 32 wheat/crops"),
    GoalType.EXPLORE_AREA: ("Explore for 60 seconds",),
    GoalType.BUILD_STRUCTURE: ("Gather 32 oak logs", "Build 5-block pillar"),
    GoalType.FOLLOW_PLAYER: ("Find nearest player", "Follow continuously"),
}
DEFAULT_PLAN: Tuple[str, ...] = ("Wander and observe environment",)


def chain(labels: Sequence[str]) -> List[GoalStep]:
    """Build steps where each one depends on its predecessor."""

    steps: List[GoalStep] = []
    for label in labels:
        step = GoalStep(label)
        if steps:
            step.add_dependency(steps[-1].id)
        steps.append(step)
    return steps


def parse_steps(text: Optional[str]) -> List[GoalStep]:
    """Read ``[{label, dependsOn}, ...]`` out of free text.

    Steps keep the order they appear in. ``dependsOn`` labels are resolved
    to step ids by name; labels that match no step are dropped.
    """

    if not text:
        return []
    body = balanced_span(text.strip(), "[", "]")
    if body is None:
        return []

    steps: List[GoalStep] = []
    by_label: Dict[str, GoalStep] = {}
    pending: List[Tuple[GoalStep, List[str]]] = []
    for chunk in split_objects(body):
        label = quoted_value(chunk, "label")
        if label is None or not label.strip():
            continue
        step = GoalStep(label.strip())
        steps.append(step)
        by_label.setdefault(step.label, step)
        pending.append((step, quoted_list(chunk, "dependsOn")))

    for step, dep_labels in pending:
        for dep_label in dep_labels:
            dep = by_label.get(dep_label)
            if dep is None:
                logger.debug("Dropping unknown dependency %r of step %r", dep_label, step.label)
                continue
            step.add_dependency(dep.id)
    return steps


class StepPlanner(BasePlanner):
    """Ask the LLM for a plan; use the built-in plan when that fails."""

    def __init__(self, ask: Optional[AskFn] = None) -> None:
        self._ask = ask

    @staticmethod
    def build_prompt(goal_type: GoalType) -> str:
        return PLAN_PROMPT.replace("{goal}", goal_type.value)

    def plan_with_llm(self, goal_type: GoalType) -> List[GoalStep]:
        if self._ask is None:
            return []
        reply = self._ask(self.build_prompt(goal_type))
        return parse_steps(reply)

    def plan_for(self, goal_type: GoalType) -> List[GoalStep]:
        """Always returns at least one step."""

        try:
            steps = self.plan_with_llm(goal_type)
            if steps:
                logger.info("LLM planned %s steps for %s", len(steps), goal_type.value)
                return steps
            logger.info("LLM gave no usable plan for %s; using built-in plan", goal_type.value)
        except Exception as exc:  # noqa: BLE001 - any planner fault means fallback
            logger.warning("LLM planning failed for %s (%s); using built-in plan", goal_type.value, exc)
        return self.fallback_plan(goal_type)

    @staticmethod
    def fallback_plan(goal_type: GoalType) -> List[GoalStep]:
        return chain(FALLBACK_PLANS.get(goal_type, DEFAULT_PLAN))


__all__ = ["StepPlanner", "parse_steps", "chain", "FALLBACK_PLANS", "DEFAULT_PLAN", "PLAN_PROMPT"]
