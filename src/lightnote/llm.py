"""Completion-service client for OpenAI-compatible chat endpoints.

Uses urllib.request (no extra HTTP dependency). The blocking request runs in
a worker thread so callers can ``await`` it under a bounded timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import http.client
import json
import logging
import urllib.request
from typing import Any, Protocol
from urllib.error import HTTPError, URLError

from lightnote.config import LLMSectionConfig
from lightnote.errors import (
    CompletionTimeoutError,
    ConfigurationError,
    TransportError,
)

logger = logging.getLogger(__name__)


class Completer(Protocol):
    """Anything that can turn a prompt into reply text."""

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str: ...


def extract_reply_text(data: Any) -> str:
    """Pull the reply text out of a completion response body.

    OpenAI-style ``choices[0].message.content`` first, then the plain
    ``output``/``response``/``content``/``text`` fields some providers use.
    """
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict) and message.get("content"):
            return str(message["content"]).strip()
    for field in ("output", "response", "content", "text"):
        if data.get(field):
            return str(data[field]).strip()
    return ""


def _auth_header(token: str) -> str:
    return token if token.startswith("Bearer ") else f"Bearer {token}"


class CompletionClient:
    """Async ``prompt -> text`` completion against the configured endpoint."""

    def __init__(self, config: LLMSectionConfig) -> None:
        self._config = config

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send one chat completion and return the reply text.

        Raises:
            ConfigurationError: Endpoint URL or model is missing.
            TransportError: Network failure or non-2xx status.
            CompletionTimeoutError: No reply within ``timeout`` seconds.
        """
        if not self._config.url:
            raise ConfigurationError(
                "No completion endpoint configured. Set [llm] url or LIGHTNOTE_LLM_URL."
            )
        if not self._config.model:
            raise ConfigurationError(
                "No completion model configured. Set [llm] model or LIGHTNOTE_LLM_MODEL."
            )

        payload = {
            "model": self._config.model,
            "temperature": self._config.temperature if temperature is None else temperature,
            "messages": [
                {"role": "system", "content": system or self._config.system},
                {"role": "user", "content": prompt},
            ],
        }

        logger.debug("Calling completion endpoint model=%s", self._config.model)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._post, payload),
                timeout=self._config.timeout,
            )
        except TimeoutError as exc:
            raise CompletionTimeoutError(
                f"Completion request timed out after {self._config.timeout:g}s"
            ) from exc

    def _post(self, payload: dict[str, Any]) -> str:
        headers = {"Content-Type": "application/json"}
        if self._config.token:
            headers["Authorization"] = _auth_header(self._config.token)

        req = urllib.request.Request(
            self._config.url,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self._config.timeout) as resp:
                raw = resp.read()
        except HTTPError as exc:
            err_text = ""
            with contextlib.suppress(Exception):
                err_text = exc.read().decode("utf-8")
            raise TransportError(
                f"Completion request failed: {exc.code} {exc.reason}",
                status=exc.code,
                body=err_text[:500],
            ) from exc
        except URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise CompletionTimeoutError("Completion request timed out") from exc
            raise TransportError(f"Completion connection error: {exc.reason}") from exc
        except TimeoutError as exc:
            raise CompletionTimeoutError("Completion request timed out") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(f"Completion connection error: {exc!r}") from exc

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransportError(
                f"Completion endpoint returned a non-UTF-8 body: {exc}",
                body=raw[:500].decode("utf-8", errors="replace"),
            ) from exc

        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise TransportError(
                f"Completion endpoint returned a non-JSON body: {exc}",
                body=body[:500],
            ) from exc
        return extract_reply_text(data)
