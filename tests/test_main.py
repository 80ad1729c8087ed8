import queue
import threading

import pytest

from npc_mind import main as main_module
from npc_mind.goals.goal import GoalType
from npc_mind.persistence.event_log import iter_telemetry
from npc_mind.utils.cli import command_parser
from npc_mind.utils.cli.command_parser import CLICommand, parse_command

CONFIG_TEXT = """
agent:
  name: Bob
world:
  tick_rate: 1000
behavior:
  decision_interval: 2
  think_interval: 3
llm:
  mode: offline
telemetry:
  event_log_path: {log}
logging:
  global_level: WARNING
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(command_parser, "_cli_command_queue", queue.Queue())
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_TEXT.format(log=tmp_path / "events.jsonl"), encoding="utf-8")
    return path


def test_bootstrap_wires_runtime(config_file):
    runtime = main_module.bootstrap(config_file, players=["Ann"], seed=1)
    assert runtime.config.agent.name == "Bob"
    assert runtime.brain.npc_name == "Bob"
    assert runtime.llm.mode == "offline"
    assert runtime.executor.players == ["Ann"]
    assert [w.name for w in runtime.workers] == ["PlannerWorker", "ThinkWorker", "ChatWorker"]
    assert runtime.brain_loop.think_interval == 3
    assert runtime.chat.config.chat_range == 50.0


def test_step_drives_behavior_without_workers(config_file):
    runtime = main_module.bootstrap(config_file, players=[])
    runtime.step()
    runtime.step()
    assert runtime.tick == 2
    assert ("explore", (40,)) in runtime.executor.calls


def test_run_stops_after_max_ticks(config_file, tmp_path):
    runtime = main_module.bootstrap(config_file, players=["Ann"], seed=3)
    main_module.run(runtime, max_ticks=6)
    assert runtime.tick == 6
    assert not any(w.running for w in runtime.workers)
    prefixes = {rec.prefix for rec in iter_telemetry(tmp_path / "events.jsonl")}
    assert "INVENTORY" in prefixes
    assert "THINKING" in prefixes


def test_quit_command_stops_loop(config_file):
    runtime = main_module.bootstrap(config_file)
    assert command_parser.submit_command("/quit")
    main_module.run(runtime, max_ticks=100)
    assert runtime.tick == 0
    assert not runtime.running


def test_goal_command_requests_plan(config_file, capsys):
    runtime = main_module.bootstrap(config_file)
    main_module.execute(parse_command("/goal gather wood"), runtime)
    goal = runtime.behavior.goal_manager.current_goal
    assert goal.type is GoalType.GATHER_WOOD
    assert goal.description == "gather wood"
    assert runtime.behavior.get_status() == "GOAL: GATHER_WOOD (IN_PROGRESS)"
    assert "Goal set" in capsys.readouterr().out

    # Plan arrives on the next tick once the planner worker has run it.
    runtime.workers[0].process_queue_once()
    runtime.step()
    assert [s.label for s in goal.steps][0] == "Navigate to forest area"


def test_status_and_unknown_commands(config_file, capsys):
    runtime = main_module.bootstrap(config_file)
    main_module.execute(CLICommand("status"), runtime)
    main_module.execute(CLICommand("dance"), runtime)
    main_module.execute(CLICommand("goal"), runtime)
    out = capsys.readouterr().out
    assert "EXPLORING" in out
    assert "Thought: Idle" in out
    assert "Unknown command: /dance" in out
    assert "Usage: /goal" in out
    assert "Chat: talking to nobody (0 replies pending)" in out


def test_main_with_goal_flag(config_file, monkeypatch):
    seen = []

    def fake_cli_thread():
        thread = threading.Thread(target=lambda: None)
        thread.start()
        thread.join()
        return thread

    real_run = main_module.run

    def recording_run(runtime, max_ticks=None):
        seen.append(runtime)
        real_run(runtime, max_ticks)

    monkeypatch.setattr(main_module, "start_cli_thread", fake_cli_thread)
    monkeypatch.setattr(main_module, "run", recording_run)
    main_module.main(["--config", str(config_file), "--ticks", "2", "--goal", "mine diamonds", "--player", "Ann"])

    (runtime,) = seen
    assert runtime.tick == 2
    assert runtime.executor.players == ["Ann"]
    goal = runtime.behavior.goal_manager.current_goal
    assert goal is not None and goal.type is GoalType.MINE_DIAMONDS


def test_chat_command_records_interaction(config_file, capsys, tmp_path):
    runtime = main_module.bootstrap(config_file, players=["Ann"])
    main_module.execute(parse_command("/chat Ann hey Bob, what are you doing?"), runtime)
    main_module.execute(parse_command("/chat Zed hello bob"), runtime)
    main_module.execute(parse_command("/chat Ann"), runtime)
    out = capsys.readouterr().out
    assert "Bob heard Ann." in out
    assert "Zed" not in out
    assert "Usage: /chat" in out

    obs = runtime.executor.observe()
    assert obs.last_interaction_player == "Ann"
    assert obs.last_interaction_time_ms > 0
    assert runtime.chat.conversations["Ann"].messages == ["hey Bob, what are you doing?"]
    main_module.execute(CLICommand("status"), runtime)
    assert "Chat: talking to Ann (1 replies pending)" in capsys.readouterr().out

    # Offline replies are placeholders, so nothing is said aloud.
    runtime.workers[2].process_queue_once()
    runtime.step()
    assert runtime.chat.pending == 0
    assert not any(name == "say" for name, _ in runtime.executor.calls)
    chat_lines = [r.payload for r in iter_telemetry(tmp_path / "events.jsonl", {"CHAT"})]
    assert chat_lines == ["Ann: hey Bob, what are you doing?"]
