from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Protocol

from openai import AsyncOpenAI


LOGGER = logging.getLogger("hellotown.llm.client")


def _is_enabled(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class TextGenerator(Protocol):
    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str | None: ...


@dataclass
class LLMClient:
    enabled: bool
    base_url: str
    model: str
    api_key: str | None
    timeout_sec: float = 20.0
    max_retries: int = 0
    debug: bool = False
    _sdk_client: AsyncOpenAI | None = None

    @classmethod
    def from_env(cls) -> "LLMClient":
        base_url = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1").strip()
        model = os.getenv("LLM_MODEL", "gpt-3.5-turbo").strip()
        api_key = (os.getenv("OPENAI_API_KEY") or os.getenv("LLM_API_KEY") or "").strip() or None

        try:
            timeout_sec = float(os.getenv("LLM_TIMEOUT_SEC", "20"))
        except ValueError:
            timeout_sec = 20.0
        timeout_sec = max(1.0, min(timeout_sec, 180.0))

        try:
            max_retries = int(os.getenv("LLM_MAX_RETRIES", "0"))
        except ValueError:
            max_retries = 0
        max_retries = max(0, min(max_retries, 5))

        debug = _is_enabled(os.getenv("LLM_DEBUG", "0"))

        return cls(
            enabled=bool(base_url) and bool(model) and bool(api_key),
            base_url=base_url.rstrip("/"),
            model=model,
            api_key=api_key,
            timeout_sec=timeout_sec,
            max_retries=max_retries,
            debug=debug,
        )

    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str | None:
        if not self.enabled:
            return None

        try:
            response = await self._get_sdk_client().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max(1, int(max_tokens)),
                temperature=max(0.0, min(float(temperature), 2.0)),
            )
        except Exception as exc:
            LOGGER.warning("LLM chat.completions error type=%s detail=%r", type(exc).__name__, exc)
            return None

        if self.debug:
            try:
                as_dict = response.model_dump()
            except Exception:
                as_dict = {"response_repr": repr(response)}
            self._debug(f"LLM chat.completions response prefix={json.dumps(as_dict, ensure_ascii=False)[:280]!r}")

        content = self._extract_message_content(response)
        if not content:
            self._debug("LLM response has no assistant text content")
        return content

    def _get_sdk_client(self) -> AsyncOpenAI:
        if self._sdk_client is None:
            self._sdk_client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_sec,
                max_retries=self.max_retries,
            )
        return self._sdk_client

    def _debug(self, message: str) -> None:
        if self.debug:
            LOGGER.warning(message)

    def _extract_message_content(self, response_obj: Any) -> str | None:
        choices = getattr(response_obj, "choices", None)
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        if message is None:
            return None
        content = getattr(message, "content", None)

        if isinstance(content, str):
            trimmed = content.strip()
            return trimmed if trimmed else None

        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if not isinstance(item, dict):
                    continue
                text = item.get("text")
                if isinstance(text, str):
                    parts.append(text)
            merged = "".join(parts).strip()
            return merged if merged else None

        return None
