"""Decision core: observation in, one refined :class:`Action` out."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Optional, Protocol

from ..config import CONFIG
from ..core.observation import Observation
from ..telemetry.telemetry import ERROR, LLM_RESPONSE, THINKING, Telemetry, emit
from .actions import Action, Follow, Idle, Wander, WalkTo, parse_action
from .llm.llm_manager import is_usable_reply
from .prompt_builder import PromptBuilder

logger = logging.getLogger(__name__)

# Targets further than this from the NPC are treated as hallucinated.
MAX_WALK_DISTANCE = 50.0
# Consecutive repeats tolerated before the streak rule overrides.
STREAK_LIMIT = 2

NO_RESPONSE_THOUGHT = "No response from the LLM, standing by"
UNUSABLE_THOUGHT = "The LLM did not give a usable answer, standing by"


class LLMClient(Protocol):
    def ask(self, prompt: str) -> str: ...


@dataclass(frozen=True, slots=True)
class BrainSnapshot:
    """What the NPC is thinking and doing, plus where it is."""

    npc_name: str
    thought: str
    action: str
    x: float
    y: float
    z: float


class AgentBrain:
    """Prompt the LLM, parse the reply and keep the NPC out of idle loops.

    ``idle_streak`` and ``wander_streak`` live on the instance and are only
    changed by :meth:`refine_action`. In the threaded loop only
    :meth:`consult` leaves the tick thread.
    """

    def __init__(
        self,
        llm: LLMClient,
        npc_name: str | None = None,
        *,
        prompt_builder: PromptBuilder | None = None,
        use_simple_prompt: bool = False,
        fallback_reply: str | None = None,
    ) -> None:
        self.llm = llm
        self.npc_name = npc_name or CONFIG.agent.name
        self.prompt_builder = prompt_builder or PromptBuilder(self.npc_name)
        self.use_simple_prompt = use_simple_prompt
        self.fallback_reply = fallback_reply if fallback_reply is not None else CONFIG.llm.fallback_reply
        self.idle_streak = 0
        self.wander_streak = 0
        self.current_thought = "Idle"
        self.current_action = "Waiting"

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def compose(self, observation: Observation) -> str:
        return self.prompt_builder.build(observation, simple=self.use_simple_prompt)

    def consult(self, prompt: str) -> str:
        """Blocking LLM call. Safe to run off the tick thread."""
        return self.llm.ask(prompt)

    def decide(
        self,
        observation: Observation,
        reply: str | None,
        telemetry: Optional[Telemetry] = None,
    ) -> Action:
        if reply is None or not reply.strip():
            self.current_thought = NO_RESPONSE_THOUGHT
            return Idle()

        emit(telemetry, LLM_RESPONSE, reply)
        if not is_usable_reply(reply, self.fallback_reply):
            logger.info("Unusable LLM reply %r; staying idle", reply[:80])
            self.current_thought = UNUSABLE_THOUGHT
            return Idle()

        self.current_thought = reply.strip()
        proposed = parse_action(reply)
        action = self.refine_action(observation, proposed)
        if action != proposed:
            logger.info("Refined %s -> %s", proposed, action)
        return action

    def think(self, observation: Observation, telemetry: Optional[Telemetry] = None) -> Action:
        """Run one full decision cycle. Never raises."""

        try:
            prompt = self.compose(observation)
            emit(telemetry, THINKING, prompt)
            reply = self.consult(prompt)
            return self.decide(observation, reply, telemetry)
        except Exception as exc:  # noqa: BLE001 - a decision must always come back
            logger.exception("Decision cycle failed")
            self.current_thought = f"Error: {exc}"
            emit(telemetry, ERROR, f"Brain error: {exc}")
            return Idle()

    # ------------------------------------------------------------------
    # Guardrails
    # ------------------------------------------------------------------
    def refine_action(self, observation: Observation, action: Action) -> Action:
        first = observation.first_player

        if isinstance(action, Idle):
            self.idle_streak += 1
            self.wander_streak = 0
            if first is not None:
                return Follow(first)
            if self.idle_streak > STREAK_LIMIT:
                return Wander()
            return action

        if isinstance(action, Wander):
            self.wander_streak += 1
            self.idle_streak = 0
            if first is not None and self.wander_streak > STREAK_LIMIT:
                return Follow(first)
            return action

        if isinstance(action, WalkTo):
            distance = math.hypot(action.x - observation.x, action.z - observation.z)
            if distance > MAX_WALK_DISTANCE:
                logger.info("Rejecting walk target %.1f blocks away", distance)
                return Follow(first) if first is not None else Wander()

        self.idle_streak = 0
        self.wander_streak = 0
        return action

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def set_thought(self, thought: str) -> None:
        self.current_thought = thought

    def set_action(self, action: str) -> None:
        self.current_action = action

    def snapshot(self, x: float, y: float, z: float) -> BrainSnapshot:
        return BrainSnapshot(self.npc_name, self.current_thought, self.current_action, x, y, z)


__all__ = ["AgentBrain", "BrainSnapshot", "LLMClient", "MAX_WALK_DISTANCE", "STREAK_LIMIT"]
