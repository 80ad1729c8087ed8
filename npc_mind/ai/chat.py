"""Answer players who talk to the NPC in chat.

Incoming lines are filtered by distance and by whether they address the
NPC at all. Addressed lines become a short conversational prompt whose
LLM round trip runs on a :class:`DecisionWorker`; the cleaned reply is
said through the executor on a later tick.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import itertools
import logging
import re
from typing import Callable, Deque, Dict, List, Optional, Tuple

from ..config import CONFIG, ChatConfig
from ..core.observation import Observation
from ..core.time_manager import now_ms
from ..telemetry.telemetry import CHAT, ERROR, Telemetry, emit
from ..systems.decision_worker import CHAT as CHAT_JOB, DecisionResult, DecisionWorker
from ..systems.executor import ActionExecutor
from .llm.llm_manager import is_usable_reply

logger = logging.getLogger(__name__)

# A conversation goes quiet after five minutes without a message.
ACTIVE_WINDOW_MS = 300_000
RECENT_MESSAGE_LIMIT = 20

QUESTION_STARTS = ("what ", "where ", "how ", "why ", "who ")
GREETINGS = ("hi", "hello", "hey")
_MENTION_RE = re.compile(r"\b(?:ai|npc)\b")
_ACTION_RE = re.compile(r"\*.*?\*")

AskFn = Callable[[str], str]
ObserveFn = Callable[[], Optional[Observation]]
InteractionFn = Callable[[str, int], None]


def should_respond(message: str, npc_name: str = "Freddy") -> bool:
    """Whether ``message`` mentions the NPC, asks a question or greets."""

    lower = message.strip().lower()
    name = npc_name.lower()
    if name in lower or _MENTION_RE.search(lower):
        return True
    if "?" in lower or lower.startswith(QUESTION_STARTS):
        return True
    return lower in GREETINGS or lower in {f"{g} {name}" for g in ("hey", "hello")}


def clean_response(reply: str, npc_name: str = "Freddy") -> str:
    """Strip quotes, a ``Name:`` prefix and ``*emotes*`` from an LLM reply."""

    text = reply.strip()
    text = re.sub(r"^['\"]|['\"]$", "", text)
    text = text.replace(f"{npc_name}: ", "")
    text = _ACTION_RE.sub("", text)
    return text.strip()


@dataclass(slots=True)
class ConversationContext:
    """What one player has said to the NPC and what it answered."""

    player: str
    messages: List[str] = field(default_factory=list)
    responses: List[str] = field(default_factory=list)
    last_interaction_ms: int = 0

    def add_message(self, message: str, at_ms: int) -> None:
        self.messages.append(message)
        self.last_interaction_ms = at_ms

    def add_response(self, response: str) -> None:
        self.responses.append(response)

    def recent_messages(self, count: int) -> List[str]:
        return self.messages[-count:] if count > 0 else []

    def is_active(self, now: int) -> bool:
        return now - self.last_interaction_ms < ACTIVE_WINDOW_MS


class ChatResponder:
    """Turn player chat into NPC replies without blocking the tick."""

    def __init__(
        self,
        ask: AskFn,
        executor: ActionExecutor,
        *,
        npc_name: str = "Freddy",
        observe: ObserveFn | None = None,
        on_interaction: InteractionFn | None = None,
        worker: DecisionWorker | None = None,
        telemetry: Telemetry | None = None,
        fallback_reply: str | None = None,
        config: ChatConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.ask = ask
        self.executor = executor
        self.npc_name = npc_name
        self.observe = observe
        self.on_interaction = on_interaction
        self.worker = worker
        self.telemetry = telemetry
        self.fallback_reply = fallback_reply
        self.config = config or CONFIG.chat
        self._clock = clock
        self.conversations: Dict[str, ConversationContext] = {}
        self.recent_messages: Deque[str] = deque(maxlen=RECENT_MESSAGE_LIMIT)
        self._pending: Dict[str, Tuple[str, ConversationContext]] = {}
        self._seq = itertools.count(1)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def active_players(self) -> List[str]:
        now = self._clock()
        return [name for name, ctx in self.conversations.items() if ctx.is_active(now)]

    # ------------------------------------------------------------------
    # Incoming chat
    # ------------------------------------------------------------------
    def on_chat(self, player: str, message: str, distance: float = 0.0) -> bool:
        """Handle one chat line. Returns whether a reply was requested."""

        if not self.config.enabled or distance >= self.config.chat_range:
            logger.debug("Ignoring chat from %s (%.1f blocks away)", player, distance)
            return False

        responded = False
        if should_respond(message, self.npc_name):
            self._obey(player, message.lower())
            self._respond(player, message)
            responded = True
        self.recent_messages.append(f"{player}: {message}")
        return responded

    def _obey(self, player: str, lower: str) -> None:
        # Movement requests only count when the NPC is named.
        if self.npc_name.lower() not in lower:
            return
        if "come here" in lower or "follow me" in lower:
            self.executor.follow(player)
        elif "stop" in lower:
            self.executor.stop()

    def _respond(self, player: str, message: str) -> None:
        now = self._clock()
        context = self.conversations.setdefault(player, ConversationContext(player))
        context.add_message(message, now)
        if self.on_interaction is not None:
            self.on_interaction(player, now)
        emit(self.telemetry, CHAT, f"{player}: {message}")

        prompt = self.build_prompt(player, message, context)
        if self.worker is None:
            try:
                reply = self.ask(prompt)
            except Exception as exc:  # noqa: BLE001 - a failed reply is just skipped
                self._fail(player, exc)
                return
            self._deliver(player, context, reply)
            return

        key = f"chat-{next(self._seq)}"
        self._pending[key] = (player, context)
        ask = self.ask
        self.worker.submit(CHAT_JOB, key, lambda: ask(prompt))

    def build_prompt(self, player: str, message: str, context: ConversationContext) -> str:
        observation = self.observe() if self.observe is not None else None
        lines = [
            f"You are {self.npc_name}, a friendly AI in Minecraft.",
            f"You are having a conversation with {player}.",
            "",
            "CURRENT STATUS:",
            f"- Your Name: {self.npc_name}",
            f"- Target Player: {player}",
        ]
        if observation is not None:
            lines.append(f"- Your Location: [{observation.x:.0f}, {observation.y:.0f}, {observation.z:.0f}]")
            lines.append(f"- Time: {observation.time_of_day()}")
        lines.append("- Your Mood: Friendly and helpful")
        lines.append("")
        lines.append("CONVERSATION HISTORY:")
        lines.extend(f"- {msg}" for msg in context.recent_messages(self.config.history_size))
        lines.extend([
            "",
            f'PLAYER JUST SAID: "{message}"',
            "",
            "RESPOND NATURALLY:",
            "- Be friendly and conversational",
            "- Keep response SHORT (1-2 sentences max)",
            "- Be helpful if they ask for assistance",
            "- Show personality",
            "- Don't break character",
            "",
            "Your response (no quotes): ",
        ])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------
    def update(self) -> None:
        """Deliver finished replies. Call once per tick; never raises."""

        if self.worker is None:
            return
        try:
            for result in self.worker.poll_results():
                self.handle_result(result)
        except Exception as exc:  # noqa: BLE001 - the tick driver must survive
            logger.exception("Chat update failed")
            emit(self.telemetry, ERROR, f"Chat error: {exc}")

    def handle_result(self, result: DecisionResult) -> bool:
        if result.kind != CHAT_JOB or result.key not in self._pending:
            return False
        player, context = self._pending.pop(result.key)
        if result.error is not None:
            self._fail(player, result.error)
        else:
            self._deliver(player, context, result.value)
        return True

    def _fail(self, player: str, error: BaseException) -> None:
        logger.warning("Chat response error for %s: %s", player, error)
        emit(self.telemetry, ERROR, f"Chat response failed: {error}")

    def _deliver(self, player: str, context: ConversationContext, reply: str | None) -> None:
        text = clean_response(reply or "", self.npc_name)
        if not is_usable_reply(text, self.fallback_reply):
            logger.info("No usable chat reply for %s", player)
            return
        self.executor.say(text)
        context.add_response(text)
        emit(self.telemetry, CHAT, f"{self.npc_name}: {text}")
        logger.info("%s -> %s: %s", self.npc_name, player, text)


__all__ = [
    "ChatResponder",
    "ConversationContext",
    "should_respond",
    "clean_response",
    "ACTIVE_WINDOW_MS",
    "RECENT_MESSAGE_LIMIT",
]
