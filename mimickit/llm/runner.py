"""HTTP adapters around hosted text-generation services (Anthropic / OpenAI-compatible)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()

PROVIDERS = ("anthropic", "openai")


@dataclass
class LLMRequest:
    """Represents a single text-generation request."""

    prompt: str
    system: Optional[str]
    model: str
    provider: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Executes prompts against the configured generation service."""

    DEFAULT_PROVIDER = "anthropic"
    DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
    DEFAULT_BASE_URLS = {
        "anthropic": "https://api.anthropic.com/v1",
        "openai": "https://api.openai.com/v1",
    }
    DEFAULT_MAX_TOKENS = 4000
    ANTHROPIC_VERSION = "2023-06-01"
    ENV_MODEL_KEYS = ("MIMICKIT_LLM_MODEL", "ANTHROPIC_MODEL")
    ENV_BASE_URL_KEYS = ("MIMICKIT_LLM_BASE_URL", "ANTHROPIC_API_BASE")
    ENV_API_KEY_KEYS = ("MIMICKIT_LLM_API_KEY", "ANTHROPIC_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        provider: str | None = None,
        base_url: str | None | object = _AUTO_BASE_URL,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.provider = (provider or self.DEFAULT_PROVIDER).lower()
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unsupported provider '{provider}'")
        self.model = self._resolve_model(model)
        self._explicit_base_url = base_url is not _AUTO_BASE_URL or bool(
            self._first_env_value(self.ENV_BASE_URL_KEYS)
        )
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens or self.DEFAULT_MAX_TOKENS
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    @property
    def configured(self) -> bool:
        """True with a custom runner, an API key, or an explicitly set OpenAI-compatible base_url."""
        if self._runner is not self._http_runner or self.api_key:
            return True
        return self.provider == "openai" and self._explicit_base_url and bool(self.base_url)

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Send the prompt to the configured service and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            provider=self.provider,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return self._runner(request)

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        if not request.base_url:
            raise RuntimeError("HTTP runner requires a base_url to be configured.")
        if request.provider == "anthropic":
            endpoint, payload, headers = LLMRunner._anthropic_request(request)
        else:
            endpoint, payload, headers = LLMRunner._openai_request(request)

        data = json.dumps(payload).encode("utf-8")
        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise RuntimeError(
                f"LLM HTTP runner failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise RuntimeError(f"LLM HTTP runner failed: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("LLM HTTP runner returned invalid JSON") from exc
        if not isinstance(response_payload, dict):
            raise RuntimeError("LLM HTTP runner returned an unexpected payload")

        if request.provider == "anthropic":
            content = LLMRunner._extract_anthropic_content(response_payload)
        else:
            content = LLMRunner._extract_openai_content(response_payload)
        if not content:
            raise RuntimeError("LLM HTTP runner returned an empty response")
        return content.strip()

    @staticmethod
    def _anthropic_request(request: LLMRequest) -> tuple[str, dict[str, object], dict[str, str]]:
        payload: dict[str, object] = {
            "model": request.model,
            "max_tokens": request.max_tokens or LLMRunner.DEFAULT_MAX_TOKENS,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system:
            payload["system"] = request.system
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": LLMRunner.ANTHROPIC_VERSION,
        }
        if request.api_key:
            headers["x-api-key"] = request.api_key
        return f"{request.base_url}/messages", payload, headers

    @staticmethod
    def _openai_request(request: LLMRequest) -> tuple[str, dict[str, object], dict[str, str]]:
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        return f"{request.base_url}/chat/completions", payload, headers

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_anthropic_content(payload: dict[str, object]) -> str:
        content = payload.get("content")
        if not isinstance(content, list):
            return ""
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                return text if isinstance(text, str) else ""
        return ""

    @staticmethod
    def _extract_openai_content(payload: dict[str, object]) -> str:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_model(self, model: str | None) -> str:
        if model:
            return model
        env_value = self._first_env_value(self.ENV_MODEL_KEYS)
        if env_value:
            return env_value
        return self.DEFAULT_MODEL

    def _resolve_base_url(self, base_url: str | None | object) -> str | None:
        if base_url is None:
            return None
        if base_url is not _AUTO_BASE_URL:
            return str(base_url).rstrip("/")
        env_value = self._first_env_value(self.ENV_BASE_URL_KEYS)
        if env_value:
            return env_value.rstrip("/")
        return self.DEFAULT_BASE_URLS[self.provider]

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None
