"""Blocking LLM client: ``ask(prompt) -> str``."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import httpx

from ...config import CONFIG, LLMConfig
from ...persistence.event_log import LLM_REQUEST, LLM_RESPONSE, append_event
from .cache import LLMCache

logger = logging.getLogger(__name__)

OFFLINE_REPLY = "<wait>"

# Replies that carry no decision. The client's own fallback reply is added
# per instance since it is configurable.
NON_ACTION_STRINGS = {
    "",
    OFFLINE_REPLY,
    "<llm_empty_response>",
    "<error_llm_request>",
    "<error_llm_parsing>",
    "<error_llm_malformed_content>",
}


def is_usable_reply(reply: str | None, fallback_reply: str | None = None) -> bool:
    """``False`` for empty replies, placeholders and ``<...>`` markers."""

    if reply is None:
        return False
    text = reply.strip()
    if text in NON_ACTION_STRINGS:
        return False
    if fallback_reply is not None and text == fallback_reply.strip():
        return False
    if text.startswith("<") and text.endswith(">") and "\n" not in text:
        return False
    return True


class LLMManager:
    """Send prompts to a local text-generation endpoint.

    Three modes: ``offline`` never touches the network, ``echo`` returns
    the last non-empty prompt line, ``live`` posts to the configured
    endpoint. Transport failures come back as ``fallback_reply``.
    """

    MODES = ("offline", "echo", "live")

    def __init__(
        self,
        llm_config: LLMConfig | None = None,
        *,
        cache_size: int | None = None,
        endpoint: str | None = None,
        model: str | None = None,
        event_log_path: str | Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        cfg = llm_config or CONFIG.llm
        self.endpoint = endpoint or os.getenv("NPC_LLM_ENDPOINT") or cfg.endpoint
        self.model = model or os.getenv("NPC_LLM_MODEL") or cfg.model
        self.timeout = cfg.timeout_seconds
        self.fallback_reply = cfg.fallback_reply
        self.mode = self.current_mode(cfg)
        self.cache = LLMCache(
            capacity=CONFIG.cache.llm_cache_size if cache_size is None else cache_size
        )
        self.event_log_path = Path(event_log_path) if event_log_path else None
        self._transport = transport
        self.requests_sent = 0

        if self.mode == "live":
            logger.info("[LLMManager] LLM live: %s at %s", self.model, self.endpoint)
        else:
            logger.info("[LLMManager] LLM mode '%s' (no network calls).", self.mode)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def ask(self, prompt: str) -> str:
        """Return the model's reply to ``prompt``; never raises."""

        if self.mode == "offline":
            return OFFLINE_REPLY

        if self.mode == "echo":
            lines = [line.strip() for line in prompt.splitlines() if line.strip()]
            return lines[-1] if lines else ""

        cached = self.cache.get(prompt)
        if cached is not None:
            logger.debug(
                "[LLMManager] Cache hit for prompt (first 70 chars): %s",
                prompt[:70].replace(chr(10), "//"),
            )
            return cached

        self._log_event(LLM_REQUEST, {"prompt": prompt})
        result = self._post(prompt)
        self._log_event(LLM_RESPONSE, {"response": result})

        if result != self.fallback_reply and result:
            self.cache.put(prompt, result)
        return result

    def is_usable(self, reply: str | None) -> bool:
        return is_usable_reply(reply, self.fallback_reply)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _post(self, prompt: str) -> str:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        raw_response_text: str | None = None
        self.requests_sent += 1
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.endpoint, json=payload)
                raw_response_text = resp.text
                resp.raise_for_status()
                data: Dict[str, Any] = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "[LLMManager] HTTP %s: %s",
                e.response.status_code,
                e.response.text[:200],
            )
            return self.fallback_reply
        except httpx.RequestError as e:
            logger.error("[LLMManager] Request error: %s", e)
            return self.fallback_reply
        except json.JSONDecodeError:
            logger.error(
                "[LLMManager] Invalid response format: %s",
                (raw_response_text or "")[:200],
            )
            return self.fallback_reply

        content = data.get("response") if isinstance(data, dict) else None
        if not isinstance(content, str):
            logger.warning("[LLMManager] 'response' missing or not a string in reply.")
            return self.fallback_reply
        logger.debug("[LLMManager] Reply: '%s'", content.strip().replace(chr(10), "//"))
        return content.strip()

    def _log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.event_log_path is None:
            return
        try:
            append_event(self.event_log_path, self.requests_sent, event_type, data)
        except OSError as exc:
            logger.debug("[LLMManager] Could not append %s event: %s", event_type, exc)

    @classmethod
    def current_mode(cls, llm_config: LLMConfig | None = None) -> str:
        """Return the configured LLM mode."""
        env_mode = os.getenv("NPC_LLM_MODE")
        if env_mode and env_mode.lower() in cls.MODES:
            return env_mode.lower()

        cfg = llm_config or CONFIG.llm
        mode_from_cfg = str(cfg.mode).lower()
        if mode_from_cfg in cls.MODES:
            return mode_from_cfg

        return "offline"


__all__ = ["LLMManager", "NON_ACTION_STRINGS", "OFFLINE_REPLY", "is_usable_reply"]
