"""Simple configuration loader for npc_mind."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.yaml"


@dataclass
class AgentConfig:
    """Identity of the controlled character."""

    name: str = "Freddy"


@dataclass
class WorldConfig:
    """Configuration values for the world section."""

    tick_rate: float = 20.0


@dataclass
class BehaviorConfig:
    """Cadence and thresholds of the decision loops."""

    decision_interval: int = 40
    think_interval: int = 60
    hunger_threshold: int = 10
    explore_radius: int = 40
    explore_duration_seconds: int = 60


@dataclass
class LLMConfig:
    """Configuration for LLM integration."""

    mode: str = "offline"
    endpoint: str = "http://localhost:11434/api/generate"
    model: str = "llama3.2"
    timeout_seconds: float = 30.0
    fallback_reply: str = "⚠️ Freddy is thinking too hard..."


@dataclass
class ChatConfig:
    """When and how the NPC answers player chat."""

    enabled: bool = True
    chat_range: float = 50.0
    history_size: int = 3


@dataclass
class LoggingConfig:
    """Root and per-module log levels."""

    global_level: str = "INFO"
    module_levels: Dict[str, str] = field(default_factory=dict)


@dataclass
class TelemetryConfig:
    """Where telemetry lines are persisted, if anywhere."""

    event_log_path: Optional[str] = None


@dataclass
class CacheConfig:
    llm_cache_size: int = 256
    log_retention_mb: int = 50


@dataclass
class Config:
    """Top level configuration dataclass."""

    agent: AgentConfig
    world: WorldConfig
    behavior: BehaviorConfig
    llm: LLMConfig
    logging: LoggingConfig
    telemetry: TelemetryConfig
    cache: CacheConfig
    chat: ChatConfig = field(default_factory=ChatConfig)


def _parse_config(data: dict[str, Any]) -> Config:
    """Convert raw ``data`` into :class:`Config`."""

    agent_data = data.get("agent", {}) or {}
    agent = AgentConfig(name=str(agent_data.get("name", "Freddy")))

    world_data = data.get("world", {}) or {}
    world = WorldConfig(tick_rate=float(world_data.get("tick_rate", 20)))

    behavior_data = data.get("behavior", {}) or {}
    behavior = BehaviorConfig(
        decision_interval=int(behavior_data.get("decision_interval", 40)),
        think_interval=int(behavior_data.get("think_interval", 60)),
        hunger_threshold=int(behavior_data.get("hunger_threshold", 10)),
        explore_radius=int(behavior_data.get("explore_radius", 40)),
        explore_duration_seconds=int(
            behavior_data.get("explore_duration_seconds", 60)
        ),
    )

    llm_data = data.get("llm", {}) or {}
    llm = LLMConfig(
        mode=str(llm_data.get("mode", "offline")),
        endpoint=str(llm_data.get("endpoint", LLMConfig.endpoint)),
        model=str(llm_data.get("model", LLMConfig.model)),
        timeout_seconds=float(llm_data.get("timeout_seconds", 30.0)),
        fallback_reply=str(llm_data.get("fallback_reply", LLMConfig.fallback_reply)),
    )

    logging_data = data.get("logging", {}) or {}
    logging_cfg = LoggingConfig(
        global_level=str(logging_data.get("global_level", "INFO")).upper(),
        module_levels=dict(logging_data.get("module_levels") or {}),
    )

    telemetry_data = data.get("telemetry", {}) or {}
    telemetry = TelemetryConfig(event_log_path=telemetry_data.get("event_log_path"))

    cache_data = data.get("cache", {}) or {}
    cache = CacheConfig(
        llm_cache_size=int(cache_data.get("llm_cache_size", 256)),
        log_retention_mb=int(cache_data.get("log_retention_mb", 50)),
    )

    chat_data = data.get("chat", {}) or {}
    chat = ChatConfig(
        enabled=bool(chat_data.get("enabled", True)),
        chat_range=float(chat_data.get("chat_range", 50.0)),
        history_size=int(chat_data.get("history_size", 3)),
    )

    return Config(
        agent=agent,
        world=world,
        behavior=behavior,
        llm=llm,
        logging=logging_cfg,
        telemetry=telemetry,
        cache=cache,
        chat=chat,
    )


def load_config(path: Path = CONFIG_PATH) -> Config:
    """Load configuration from ``path`` and return a :class:`Config`."""

    if path.is_file():
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        raw = {}
    return _parse_config(raw)


# Load configuration at module import time.
CONFIG = load_config()


__all__ = [
    "CONFIG",
    "Config",
    "AgentConfig",
    "WorldConfig",
    "BehaviorConfig",
    "LLMConfig",
    "ChatConfig",
    "LoggingConfig",
    "TelemetryConfig",
    "CacheConfig",
    "load_config",
]
