"""Free-roam loop: let the LLM pick an action whenever no goal is running."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..ai.actions import Action, Idle
from ..ai.brain import AgentBrain
from ..ai.prompt_builder import describe_observation
from ..config import CONFIG
from ..core.observation import Observation
from ..telemetry.telemetry import (
    ACTION,
    ERROR,
    OBSERVATION,
    PLAYERS,
    RESPONSE_TIME,
    THINKING,
    TICK,
    Telemetry,
    emit,
)
from .autonomous_behavior import AutonomousAIBehavior
from .decision_worker import THINK, DecisionResult, DecisionWorker
from .executor import ActionExecutor, dispatch_action

logger = logging.getLogger(__name__)

ObserveFn = Callable[[], Optional[Observation]]


class BrainLoop:
    """Every ``think_interval`` ticks, observe, ask the brain and act.

    The prompt is built and the reply parsed on the calling thread; only
    the LLM round trip goes to ``worker``. One think is in flight at most.
    """

    def __init__(
        self,
        brain: AgentBrain,
        executor: ActionExecutor,
        observe: ObserveFn,
        *,
        behavior: AutonomousAIBehavior | None = None,
        worker: DecisionWorker | None = None,
        telemetry: Telemetry | None = None,
        think_interval: int | None = None,
    ) -> None:
        self.brain = brain
        self.executor = executor
        self.observe = observe
        self.behavior = behavior
        self.worker = worker
        self.telemetry = telemetry
        self.think_interval = max(1, think_interval or CONFIG.behavior.think_interval)
        self.tick_count = 0
        self.last_action: Action | None = None
        self._pending_key: str | None = None
        self._pending_obs: Observation | None = None

    @property
    def thinking(self) -> bool:
        return self._pending_key is not None

    def _goal_active(self) -> bool:
        return self.behavior is not None and self.behavior.goal_in_progress

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def update(self) -> None:
        """Advance one tick. Never raises."""

        self.tick_count += 1
        try:
            if self.worker is not None:
                for result in self.worker.poll_results():
                    self.handle_result(result)

            if self.tick_count % self.think_interval != 0:
                return
            if self._goal_active():
                logger.debug("Goal in progress; brain paused")
                return
            if self.thinking:
                logger.debug("Previous think still running")
                return
            self._start_think()
        except Exception as exc:  # noqa: BLE001 - the tick driver must survive
            logger.exception("Brain loop tick failed")
            emit(self.telemetry, ERROR, f"Brain loop error: {exc}")

    def _start_think(self) -> None:
        observation = self.observe()
        if observation is None:
            logger.warning("Failed to create observation")
            emit(self.telemetry, ERROR, "Failed to create observation")
            return

        emit(self.telemetry, TICK, self.tick_count)
        emit(self.telemetry, OBSERVATION, describe_observation(observation))
        if self.telemetry is not None:
            self.telemetry.position(observation.x, observation.y, observation.z)
        emit(self.telemetry, PLAYERS, ",".join(observation.nearby_players))

        prompt = self.brain.compose(observation)
        emit(self.telemetry, THINKING, prompt)
        logger.info("Thinking (tick %s, players=%s)", self.tick_count, list(observation.nearby_players))

        if self.worker is None:
            start = time.perf_counter()
            try:
                reply = self.brain.consult(prompt)
            except Exception as exc:  # noqa: BLE001 - reported like a failed job
                self._fail(observation, exc, int((time.perf_counter() - start) * 1000))
                return
            self._apply(observation, reply, int((time.perf_counter() - start) * 1000))
            return

        brain = self.brain
        key = f"think-{self.tick_count}"
        self._pending_key = key
        self._pending_obs = observation
        self.worker.submit(THINK, key, lambda: brain.consult(prompt))

    def handle_result(self, result: DecisionResult) -> bool:
        if result.kind != THINK or result.key != self._pending_key:
            return False
        observation = self._pending_obs
        self._pending_key = None
        self._pending_obs = None
        if observation is None:
            return False

        if result.error is not None:
            self._fail(observation, result.error, result.elapsed_ms)
        else:
            self._apply(observation, result.value, result.elapsed_ms)
        return True

    def _fail(self, observation: Observation, error: BaseException, elapsed_ms: int) -> None:
        logger.error("LLM call failed: %s", error)
        emit(self.telemetry, ERROR, f"LLM call failed: {error}")
        self._apply(observation, None, elapsed_ms)
        self.brain.set_thought(f"Error: {error}")

    def _apply(self, observation: Observation, reply: str | None, elapsed_ms: int) -> None:
        if self._goal_active():
            logger.info("Goal started while thinking; discarding reply")
            return

        action = self.brain.decide(observation, reply, self.telemetry)
        if action is None:
            logger.warning("Brain returned no action, defaulting to IDLE")
            emit(self.telemetry, ERROR, "Brain returned null, defaulting to IDLE")
            action = Idle()

        emit(self.telemetry, RESPONSE_TIME, elapsed_ms)
        emit(self.telemetry, ACTION, str(action))
        logger.info("Action: %s (%sms)", action, elapsed_ms)
        self.brain.set_action(str(action))
        self.last_action = action
        dispatch_action(self.executor, action)


__all__ = ["BrainLoop"]
