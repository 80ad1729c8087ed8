"""Utilities for constructing deterministic LLM prompts from observations."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..core.observation import Observation
from ..core.time_manager import now_ms

logger = logging.getLogger(__name__)

# Interactions older than this are not worth mentioning.
RECENT_INTERACTION_SECONDS = 300
# "Walk to" targets further away than this are rejected by the brain.
WALK_RANGE = 50
INITIAL_ACTION = "Initialized"


def _format_players(players: tuple[str, ...]) -> str:
    return "[" + ", ".join(players) + "]"


class PromptBuilder:
    """Render an :class:`Observation` into natural-language prompts."""

    def __init__(self, npc_name: str, *, clock: Callable[[], int] = now_ms) -> None:
        self.npc_name = npc_name
        self._clock = clock

    def system_role(self) -> str:
        return f"You are {self.npc_name}, a friendly AI character in Minecraft."

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    def _situation_lines(self, observation: Observation) -> List[str]:
        lines = [
            "CURRENT SITUATION:",
            f"- Location: X={observation.x:.1f}, Y={observation.y:.1f}, Z={observation.z:.1f}",
        ]
        players = _format_players(observation.nearby_players) if observation.has_players else "[none]"
        lines.append(f"- Nearby players: {players}")
        daylight = "day" if observation.is_day_time() else "night"
        lines.append(f"- Time: {observation.time_of_day()} ({daylight})")

        if observation.last_interaction_player:
            seconds_ago = observation.time_since_last_interaction(self._clock())
            if seconds_ago <= RECENT_INTERACTION_SECONDS:
                lines.append(
                    f"- Last interaction: {observation.last_interaction_player} ({seconds_ago} seconds ago)"
                )

        if observation.last_action and observation.last_action != INITIAL_ACTION:
            lines.append(f"- Last action: {observation.last_action}")
        return lines

    @staticmethod
    def _action_lines(cx: int, cz: int) -> List[str]:
        near1 = (cx + 15, cz - 20)
        near2 = (cx - 10, cz + 25)
        return [
            "AVAILABLE ACTIONS:",
            '1. "Follow [player]" - trail a nearby player (e.g., "Follow aimbotxomega")',
            '2. "Look at [player]" - face and observe (e.g., "Look at aimbotxomega")',
            '3. "Attack [entity]" - attack a mob (e.g., "Attack zombie")',
            '4. "Mine [block]" - break a nearby block (e.g., "Mine stone", "Mine tree")',
            f'5. "Walk to X Z" - explore NEARBY locations only! From your current position ({cx} {cz}), '
            f"you could walk to ({near1[0]} {near1[1]}) or ({near2[0]} {near2[1]})",
            '6. "Say [message]" - chat (e.g., "Say Hello there!")',
            '7. "Wander" - move randomly nearby',
            '8. "Idle" - only if you truly have nothing to do (avoid)',
            "",
            f"CRITICAL: When using 'Walk to X Z', coordinates MUST be within {WALK_RANGE} blocks!",
            f"Your current position: ({cx}, {cz})",
            f"Valid range: X between {cx - WALK_RANGE} and {cx + WALK_RANGE}, "
            f"Z between {cz - WALK_RANGE} and {cz + WALK_RANGE}",
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build_prompt(self, observation: Observation) -> str:
        """Return the full decision prompt for ``observation``."""

        cx, cz = int(observation.x), int(observation.z)
        lines: List[str] = [
            self.system_role(),
            "You are proactive, curious, and avoid standing still.",
            "You speak naturally, like a player in the game.",
            "You make decisions based on what's happening around you.",
            "If players are nearby, prefer to engage/follow them. If no players, explore new ground.",
            "Do NOT idle repeatedly. Choose a meaningful action every tick.",
            "",
        ]
        lines.extend(self._situation_lines(observation))
        lines.append("")
        lines.extend(self._action_lines(cx, cz))
        lines.extend([
            "",
            "What should you do RIGHT NOW?",
            "Rules:",
            "- If players are nearby, consider following them, talking to them, or showing off by mining/building.",
            "- If you see trees or stone, consider mining them to gather resources.",
            "- If mobs are nearby, consider attacking them.",
            "- If no players nearby, explore, mine resources, or wander.",
            "- Do NOT return Idle repeatedly.",
            "- Be proactive like a real Minecraft player!",
            "- Reply with ONLY ONE action, nothing else.",
            "",
            "Example responses:",
            '- "Mine tree" (if you see trees nearby)',
            '- "Mine stone" (if you see stone nearby)',
            '- "Attack zombie" (if hostile mob nearby)',
            '- "Follow aimbotxomega"',
            '- "Look at aimbotxomega"',
            f'- "Walk to {cx + 15} {cz - 20}" (nearby)',
            '- "Say Hi there!"',
            '- "Wander"',
        ])
        prompt = "\n".join(lines) + "\n"
        logger.debug("\n--- [PromptBuilder %s] FULL PROMPT ---\n%s\n--- END PROMPT ---", self.npc_name, prompt)
        return prompt

    def build_simple_prompt(self, observation: Observation) -> str:
        """Abbreviated prompt without coordinate guidance, for low latency."""

        parts: List[str] = [f"You are {self.npc_name} in Minecraft."]
        if observation.has_players:
            parts.append(f"Players nearby: {_format_players(observation.nearby_players)}.")
        else:
            parts.append("No players nearby.")
        parts.append(f"It is {observation.time_of_day()}.")
        parts.append("Do not idle. What do you do? Reply with exactly ONE action:")
        parts.append('"Walk to X Z", "Follow [player]", "Idle", "Wander", or "Say [message]"')
        return " ".join(parts)

    def build(self, observation: Observation, *, simple: bool = False) -> str:
        return self.build_simple_prompt(observation) if simple else self.build_prompt(observation)


def describe_observation(observation: Optional[Observation]) -> str:
    """Multi-line observation summary used for the OBSERVATION telemetry line."""

    if observation is None:
        return "OBSERVATION: unavailable"
    players = "\n".join(f"  - {p}" for p in observation.nearby_players) or "  [none]"
    daylight = "day" if observation.is_day_time() else "night"
    return (
        "OBSERVATION:\n\n"
        f"Position: ({observation.x:.1f}, {observation.y:.1f}, {observation.z:.1f})\n\n"
        f"Nearby Players:\n{players}\n\n"
        f"Time: {observation.time_of_day()} ({daylight})\n\n"
        f"Last Action: {observation.last_action}"
    )


__all__ = ["PromptBuilder", "describe_observation", "RECENT_INTERACTION_SECONDS", "WALK_RANGE"]
