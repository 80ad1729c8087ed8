"""Bootstrap and tick loop for a single simulated NPC."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
import logging
import math
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from .ai.brain import AgentBrain
from .ai.chat import ChatResponder
from .ai.llm.llm_manager import LLMManager
from .ai.planning.step_planner import StepPlanner
from .config import CONFIG, CONFIG_PATH, Config, load_config
from .core.time_manager import TimeManager
from .goals.goal_manager import GoalManager
from .systems.autonomous_behavior import AutonomousAIBehavior
from .systems.brain_loop import BrainLoop
from .systems.decision_worker import DecisionWorker
from .systems.simulated_executor import SimulatedExecutor
from .telemetry.telemetry import EventLogSink, Telemetry
from .utils.cli.command_parser import (
    CLICommand,
    parse_goal_name,
    poll_command,
    start_cli_thread,
    stop_cli_thread,
)

logger = logging.getLogger(__name__)  # For main.py specific logs

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
STATUS_EVERY_TICKS = 400


def configure_logging(cfg: Config) -> None:
    numeric_level = getattr(logging, cfg.logging.global_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)

    # Apply per-module levels if defined
    for module_name, level_str in (cfg.logging.module_levels or {}).items():
        module_numeric_level = getattr(logging, str(level_str).upper(), None)
        if isinstance(module_numeric_level, int):
            logging.getLogger(module_name).setLevel(module_numeric_level)
        else:
            logger.warning("Invalid log level '%s' for module '%s' in config.", level_str, module_name)


@dataclass
class Runtime:
    """Everything the tick loop needs, wired together."""

    config: Config
    time_manager: TimeManager
    llm: LLMManager
    executor: SimulatedExecutor
    brain: AgentBrain
    behavior: AutonomousAIBehavior
    brain_loop: BrainLoop
    telemetry: Telemetry
    chat: ChatResponder
    workers: List[DecisionWorker] = field(default_factory=list)
    tick: int = 0
    running: bool = True

    def start_workers(self) -> None:
        for worker in self.workers:
            worker.start()

    def stop_workers(self) -> None:
        for worker in self.workers:
            worker.stop()

    def step(self) -> None:
        """One game tick: goal behavior, the free-roam brain, then chat replies."""

        self.tick += 1
        self.behavior.tick()
        self.brain_loop.update()
        self.chat.update()
        if self.tick % STATUS_EVERY_TICKS == 0:
            logger.info("Status: %s", self.behavior.get_status())
            logger.info("Inventory: %s", self.executor.inventory())


def bootstrap(
    config_path: str | Path = CONFIG_PATH,
    *,
    players: Sequence[str] = ("Steve",),
    seed: int | None = None,
) -> Runtime:
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    path = Path(config_path)
    cfg = load_config(path) if path != CONFIG_PATH else CONFIG
    configure_logging(cfg)

    telemetry = Telemetry()
    if cfg.telemetry.event_log_path:
        telemetry.add_sink(EventLogSink(cfg.telemetry.event_log_path))
        logger.info("[Bootstrap] Telemetry mirrored to %s", cfg.telemetry.event_log_path)

    llm = LLMManager(
        cfg.llm,
        cache_size=cfg.cache.llm_cache_size,
        event_log_path=cfg.telemetry.event_log_path,
    )
    time_manager = TimeManager(cfg.world.tick_rate)
    executor = SimulatedExecutor(players=players, seed=seed)
    plan_worker = DecisionWorker("PlannerWorker")
    think_worker = DecisionWorker("ThinkWorker")
    chat_worker = DecisionWorker("ChatWorker")

    brain = AgentBrain(llm, cfg.agent.name, fallback_reply=cfg.llm.fallback_reply)
    behavior = AutonomousAIBehavior(
        executor,
        GoalManager(),
        planner=StepPlanner(llm.ask),
        worker=plan_worker,
        telemetry=telemetry,
        config=cfg.behavior,
    )
    brain_loop = BrainLoop(
        brain,
        executor,
        executor.observe,
        behavior=behavior,
        worker=think_worker,
        telemetry=telemetry,
        think_interval=cfg.behavior.think_interval,
    )
    chat = ChatResponder(
        llm.ask,
        executor,
        npc_name=cfg.agent.name,
        observe=executor.observe,
        on_interaction=executor.record_interaction,
        worker=chat_worker,
        telemetry=telemetry,
        fallback_reply=cfg.llm.fallback_reply,
        config=cfg.chat,
    )
    logger.info("[Bootstrap] %s ready (LLM mode: %s)", cfg.agent.name, llm.mode)
    return Runtime(
        config=cfg,
        time_manager=time_manager,
        llm=llm,
        executor=executor,
        brain=brain,
        behavior=behavior,
        brain_loop=brain_loop,
        telemetry=telemetry,
        chat=chat,
        workers=[plan_worker, think_worker, chat_worker],
    )


def execute(cmd: CLICommand, runtime: Runtime) -> None:
    """Apply one console command between ticks."""

    if cmd.name == "goal":
        if not cmd.args:
            print("Usage: /goal <name>  (e.g. /goal GATHER_WOOD)")
            return
        goal_type = parse_goal_name(cmd.args[0])
        goal = runtime.behavior.request_goal(goal_type, cmd.args[0])
        print(f"Goal set: {goal}")
    elif cmd.name == "status":
        print(runtime.behavior.get_status())
        print(f"Thought: {runtime.brain.current_thought}")
        print(f"Action: {runtime.brain.current_action}")
        print(f"Inventory: {runtime.executor.inventory()}")
        talking = ", ".join(runtime.chat.active_players()) or "nobody"
        print(f"Chat: talking to {talking} ({runtime.chat.pending} replies pending)")
    elif cmd.name == "chat":
        if len(cmd.args) < 2:
            print("Usage: /chat <player> <message>")
            return
        player, message = cmd.args[0], " ".join(cmd.args[1:])
        # Only listed players count as standing next to the NPC.
        distance = 0.0 if player in runtime.executor.players else math.inf
        if runtime.chat.on_chat(player, message, distance):
            print(f"{runtime.config.agent.name} heard {player}.")
    elif cmd.name == "quit":
        runtime.running = False
    else:
        print(f"Unknown command: /{cmd.name}")


def run(runtime: Runtime, max_ticks: Optional[int] = None) -> None:
    tm = runtime.time_manager
    runtime.start_workers()
    try:
        while runtime.running:
            cmd = poll_command()
            if cmd:
                execute(cmd, runtime)
            if not runtime.running:
                break
            runtime.step()
            if max_ticks is not None and runtime.tick >= max_ticks:
                break
            tm.sleep_until_next_tick()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt caught. Shutting down...")
    finally:
        logger.info("Shutting down after %s ticks (%s)", runtime.tick, runtime.behavior.get_status())
        runtime.stop_workers()


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run an LLM-driven NPC against a simulated world.")
    parser.add_argument("--config", default=str(CONFIG_PATH), help="path to config.yaml")
    parser.add_argument("--ticks", type=int, default=None, help="stop after this many ticks")
    parser.add_argument("--goal", default=None, help="goal to start with, e.g. GATHER_WOOD")
    parser.add_argument("--player", action="append", default=None, help="name of a nearby player")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    runtime = bootstrap(args.config, players=args.player or ("Steve",), seed=args.seed)
    if args.goal:
        runtime.behavior.request_goal(parse_goal_name(args.goal), args.goal)

    cli_input_thread = start_cli_thread()
    try:
        run(runtime, args.ticks)
    finally:
        stop_cli_thread()
        if cli_input_thread.is_alive():
            cli_input_thread.join(timeout=0.1)


if __name__ == "__main__":
    main()
