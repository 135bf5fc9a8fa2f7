from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from vacancy_outreach.core.config import LlmRoleConfig
from vacancy_outreach.schemas.llm import parse_completion

logger = logging.getLogger(__name__)


class TextServiceClient:
    """Best-effort completion client for one role (extraction or reply).

    The wire profile is fixed by configuration: ``openai`` speaks
    chat-completions, ``ollama`` speaks single-prompt generate. Every failure
    mode collapses to ``None``.
    """

    def __init__(
        self,
        config: LlmRoleConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        stop: tuple[str, ...] = (),
    ) -> str | None:
        if self.config.api_type == "openai" and not self.config.api_key:
            logger.warning("OPENAI_API_KEY is required for api_type=openai; skipping model call")
            return None

        url, headers, body = self._build_request(
            prompt,
            system=system,
            temperature=self.config.temperature if temperature is None else temperature,
            max_tokens=self.config.max_tokens if max_tokens is None else max_tokens,
            stop=stop,
        )
        try:
            payload = await asyncio.wait_for(
                self._post(url, headers=headers, body=body),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("model call timed out after %.1fs model=%s", self.config.timeout_seconds, self.config.model)
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("model call failed model=%s: %s", self.config.model, exc)
            return None

        try:
            text = parse_completion(self.config.api_type, payload)
        except ValidationError as exc:
            logger.warning("unexpected %s response envelope: %s", self.config.api_type, exc)
            return None
        if text is None or not text.strip():
            logger.debug("model returned empty completion model=%s", self.config.model)
            return None
        return text.strip()

    async def _post(self, url: str, *, headers: dict[str, str], body: dict[str, Any]) -> Any:
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport) as client:
            response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            return response.json()

    def _build_request(
        self,
        prompt: str,
        *,
        system: str | None,
        temperature: float,
        max_tokens: int,
        stop: tuple[str, ...],
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_type == "openai":
            headers["Authorization"] = f"Bearer {self.config.api_key}"
            messages: list[dict[str, str]] = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            body: dict[str, Any] = {
                "model": self.config.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
            return f"{self.config.endpoint}/v1/chat/completions", headers, body

        options: dict[str, Any] = {
            "temperature": temperature,
            "top_p": 0.9,
            "num_predict": max_tokens,
        }
        if stop:
            options["stop"] = list(stop)
            options["repeat_penalty"] = 1.2
        body = {
            "model": self.config.model,
            "stream": False,
            "options": options,
            "prompt": prompt,
        }
        if system:
            body["system"] = system
        return f"{self.config.endpoint}/api/generate", headers, body
