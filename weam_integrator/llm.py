"""Multi-provider client for the code-transformation oracle (OpenAI, Anthropic, Ollama)."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from .config import LLM_API_KEY, LLM_ENDPOINT, LLM_MODEL, LLM_PROVIDER
from .errors import OracleResponseError, OracleUnavailableError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60


class LLMProvider:
    """Base class for oracle providers."""

    name = "base"
    requires_key = True

    def __init__(self, model: str, api_key: str = "", endpoint: str = ""):
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> str:
        """Send one prompt and return the raw response text."""
        if self.requires_key and not self.api_key:
            raise OracleUnavailableError(f"No API key configured for provider '{self.name}'")
        parsed = self._post(self._payload(prompt, system, temperature, max_tokens))
        try:
            text = self._extract(parsed)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise OracleResponseError(f"Unexpected {self.name} response shape: {exc}") from exc
        if not isinstance(text, str):
            raise OracleResponseError(f"{self.name} returned non-text content")
        return text

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _payload(self, prompt: str, system: Optional[str], temperature: float, max_tokens: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _extract(self, parsed: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        req = urllib.request.Request(
            self.endpoint,
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(),
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise OracleUnavailableError(f"{self.name} returned HTTP {exc.code}: {exc.reason}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise OracleUnavailableError(f"Cannot reach {self.name} at {self.endpoint}: {exc}") from exc
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise OracleResponseError(f"{self.name} returned invalid JSON: {exc}") from exc


def _chat_messages(prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions (also any OpenAI-compatible endpoint)."""

    name = "openai"

    def __init__(self, model: str, api_key: str, endpoint: str = "https://api.openai.com/v1/chat/completions"):
        super().__init__(model, api_key, endpoint or "https://api.openai.com/v1/chat/completions")

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _payload(self, prompt, system, temperature, max_tokens):
        return {
            "model": self.model,
            "messages": _chat_messages(prompt, system),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def _extract(self, parsed):
        return parsed["choices"][0]["message"]["content"]


class AnthropicProvider(LLMProvider):
    """Anthropic Claude messages API."""

    name = "anthropic"

    def __init__(self, model: str, api_key: str, endpoint: str = "https://api.anthropic.com/v1/messages"):
        super().__init__(model, api_key, endpoint or "https://api.anthropic.com/v1/messages")

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
        }

    def _payload(self, prompt, system, temperature, max_tokens):
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            payload["system"] = system
        return payload

    def _extract(self, parsed):
        blocks = parsed["content"]
        if not isinstance(blocks, list):
            raise TypeError(f"content is {type(blocks).__name__}, not a list of blocks")
        return "".join(
            block["text"] for block in blocks if isinstance(block, dict) and block.get("type") == "text"
        )


class OllamaProvider(LLMProvider):
    """Ollama local LLM provider."""

    name = "ollama"
    requires_key = False

    def __init__(self, model: str, endpoint: str = "http://127.0.0.1:11434/api/generate"):
        super().__init__(model, "", endpoint or "http://127.0.0.1:11434/api/generate")

    def _payload(self, prompt, system, temperature, max_tokens):
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        if system:
            payload["system"] = system
        return payload

    def _extract(self, parsed):
        return parsed["response"]


class CodeOracle:
    """Provider-agnostic oracle used by the mutation engine."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        """Initialize the oracle with provider selection.

        Args:
            provider: "openai", "anthropic" or "ollama" (defaults to config)
            model: Model name (defaults to config)
            api_key: Credential for cloud providers (defaults to config/env)
            endpoint: Custom endpoint URL (defaults to config)
        """
        self.provider_name = (provider or LLM_PROVIDER).lower()
        self.model = model or LLM_MODEL
        self.api_key = api_key or LLM_API_KEY
        self.endpoint = endpoint or LLM_ENDPOINT
        self.provider = self._create_provider()

    def _create_provider(self) -> LLMProvider:
        if self.provider_name == "anthropic":
            model = self.model if self.model != "gpt-4" else "claude-3-5-sonnet-20241022"
            return AnthropicProvider(model, self.api_key, self.endpoint)
        if self.provider_name == "ollama":
            model = self.model if self.model != "gpt-4" else "qwen2.5-coder:7b"
            return OllamaProvider(model, self.endpoint)
        if self.provider_name != "openai":
            logger.warning("Unknown provider '%s', falling back to openai", self.provider_name)
        return OpenAIProvider(self.model, self.api_key, self.endpoint)

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> str:
        logger.debug("Oracle request to %s/%s (%d chars)", self.provider.name, self.provider.model, len(prompt))
        return self.provider.complete(prompt, system=system, temperature=temperature, max_tokens=max_tokens)
