"""Console and ``GOAL:<name>`` command parsing for the runner."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import queue  # For thread-safe command passing
import re
import sys
import threading
from typing import List, Optional

from ...goals.goal import GoalType

logger = logging.getLogger(__name__)

GOAL_PREFIX = "GOAL:"

# Dashboard labels that don't spell out the enum name.
GOAL_ALIASES = {
    "HUNT_MOBS": GoalType.HUNT_ANIMALS,
    "HUNT": GoalType.HUNT_ANIMALS,
    "WOOD": GoalType.GATHER_WOOD,
    "STONE": GoalType.GATHER_STONE,
    "DIAMONDS": GoalType.MINE_DIAMONDS,
    "FOLLOW": GoalType.FOLLOW_PLAYER,
    "EXPLORE": GoalType.EXPLORE_AREA,
    "BUILD": GoalType.BUILD_STRUCTURE,
    "HOME": GoalType.RETURN_HOME,
}

_NOT_NAME = re.compile(r"[^A-Za-z0-9_\s-]")


def parse_goal_name(text: str | None) -> GoalType:
    """Map ``"🌳 GATHER WOOD"``, ``"gather-wood"`` or ``"GATHER_WOOD"`` to a type.

    Anything unrecognised becomes :attr:`GoalType.EXPLORE_AREA`.
    """

    if not text:
        return GoalType.EXPLORE_AREA
    cleaned = _NOT_NAME.sub("", text).strip().upper()
    key = re.sub(r"[\s-]+", "_", cleaned)
    if key in GOAL_ALIASES:
        return GOAL_ALIASES[key]
    try:
        return GoalType[key]
    except KeyError:
        logger.info("Unknown goal %r; defaulting to EXPLORE_AREA", text)
        return GoalType.EXPLORE_AREA


# ---------------------------------------------------------------------------
# Core CLI machinery
# ---------------------------------------------------------------------------

@dataclass
class CLICommand:
    """Result of parsing a command string."""
    name: str
    args: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.args)


_cli_command_queue: queue.Queue[CLICommand] = queue.Queue()
_cli_thread_stop_event = threading.Event()


def parse_command(text: str) -> Optional[CLICommand]:
    """Parse ``/goal <name>``, ``/chat <player> <msg>``, ``/status``, ``/quit`` or ``GOAL:<name>``."""

    text = text.strip()
    if text.upper().startswith(GOAL_PREFIX):
        name = text[len(GOAL_PREFIX):].strip()
        return CLICommand(name="goal", args=[name] if name else [])
    if not text.startswith("/"):
        return None
    parts = text[1:].split()
    if not parts:
        return None

    cmd = parts[0].lower()
    rest = text[1:].strip()[len(parts[0]):].strip()
    if cmd == "goal":
        # Keep multi-word labels such as "🌳 GATHER WOOD" in one argument.
        return CLICommand(name="goal", args=[rest] if rest else [])
    if cmd == "chat":
        # Player name, then the message verbatim.
        return CLICommand(name="chat", args=rest.split(None, 1))
    if cmd in ("exit", "q"):
        cmd = "quit"

    return CLICommand(name=cmd, args=parts[1:])


def _cli_input_thread_func() -> None:
    """Thread function to read CLI input."""
    print("CLI input thread started. Commands: /goal <name>, /chat <player> <msg>, /status, /quit (or GOAL:<name>).")
    while not _cli_thread_stop_event.is_set():
        try:
            # sys.stdin.readline() is blocking, which is fine in a dedicated thread.
            line = sys.stdin.readline()
            if not line:  # EOF, e.g. stdin closed
                if not _cli_thread_stop_event.is_set():
                    logger.info("CLI input stream closed.")
                break

            line = line.strip()
            if line:
                parsed = parse_command(line)
                if parsed:
                    _cli_command_queue.put(parsed)
                else:
                    print(f"Unknown input: {line}")
        except KeyboardInterrupt:
            break
        except Exception as e:  # noqa: BLE001 - keep reading after a bad line
            logger.error("Error in CLI input thread: %s", e)
            if _cli_thread_stop_event.is_set():
                break
            threading.Event().wait(1.0)

    logger.debug("CLI input thread stopped.")


def start_cli_thread() -> threading.Thread:
    """Starts the CLI input thread."""
    if _cli_thread_stop_event.is_set():  # If previously stopped, reset
        _cli_thread_stop_event.clear()

    thread = threading.Thread(target=_cli_input_thread_func, daemon=True, name="CLIInputThread")
    thread.start()
    return thread


def stop_cli_thread() -> None:
    """Signals the CLI input thread to stop. A blocked readline ends with the process."""
    _cli_thread_stop_event.set()


def submit_command(text: str) -> bool:
    """Queue ``text`` as if typed on the console."""
    parsed = parse_command(text)
    if parsed is None:
        return False
    _cli_command_queue.put(parsed)
    return True


def poll_command() -> Optional[CLICommand]:
    """Return a command from the internal queue if available, else ``None``."""
    try:
        return _cli_command_queue.get_nowait()
    except queue.Empty:
        return None


__all__ = [
    "CLICommand", "parse_command", "parse_goal_name", "poll_command",
    "submit_command", "start_cli_thread", "stop_cli_thread", "GOAL_ALIASES",
]
