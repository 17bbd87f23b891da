"""
Provider adapters: translate a canonical chat request into one vendor SDK call
and normalize the vendor response into ProviderReply.

Canonical messages are {"role": "user"|"assistant", "content": "..."}, oldest-first.
The system prompt is never part of that list; each adapter passes it through the
vendor's own system-prompt channel.

No retries (a retried completion is billed twice) and no streaming. Each SDK client
is built with an explicit timeout; exceeding it raises ProviderTimeoutError.
"""
import logging
from dataclasses import dataclass
from typing import Any

import anthropic
import openai

from app.services.errors import ProviderError, ProviderTimeoutError
from app.services.model_registry import Provider

logger = logging.getLogger(__name__)


@dataclass
class ProviderReply:
    text: str
    input_tokens: int
    output_tokens: int


def _token_count(usage: Any, key: str) -> int:
    """Get token count from a usage object (dict or SDK model). Missing counts are 0."""
    if usage is None:
        return 0
    if isinstance(usage, dict):
        return int(usage.get(key) or 0)
    return int(getattr(usage, key, 0) or 0)


class ProviderAdapter:
    """One adapter per vendor. Only instantiated when the vendor has a credential."""

    provider: Provider

    def __init__(self, client: Any, timeout: float):
        self._client = client
        self.timeout = timeout

    def send(
        self,
        vendor_model_id: str,
        max_tokens: int,
        system_prompt: str,
        messages: list[dict],
    ) -> ProviderReply:
        raise NotImplementedError


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC

    @classmethod
    def from_api_key(cls, api_key: str, timeout: float) -> "AnthropicAdapter":
        client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        return cls(client, timeout)

    def send(
        self,
        vendor_model_id: str,
        max_tokens: int,
        system_prompt: str,
        messages: list[dict],
    ) -> ProviderReply:
        converted = [
            {"role": "user" if m["role"] == "user" else "assistant", "content": m["content"]}
            for m in messages
        ]
        try:
            response = self._client.messages.create(
                model=vendor_model_id,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=converted,
            )
        except anthropic.APITimeoutError as exc:
            raise ProviderTimeoutError(self.provider.value, self.timeout) from exc
        except Exception as exc:
            raise ProviderError(self.provider.value, str(exc)) from exc

        parts = [
            block.text
            for block in (getattr(response, "content", None) or [])
            if getattr(block, "type", "") == "text"
        ]
        usage = getattr(response, "usage", None)
        return ProviderReply(
            text="".join(parts),
            input_tokens=_token_count(usage, "input_tokens"),
            output_tokens=_token_count(usage, "output_tokens"),
        )


class OpenAIAdapter(ProviderAdapter):
    provider = Provider.OPENAI

    @classmethod
    def from_api_key(cls, api_key: str, timeout: float) -> "OpenAIAdapter":
        client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        return cls(client, timeout)

    def send(
        self,
        vendor_model_id: str,
        max_tokens: int,
        system_prompt: str,
        messages: list[dict],
    ) -> ProviderReply:
        formatted = []
        if system_prompt:
            formatted.append({"role": "system", "content": system_prompt})
        formatted.extend({"role": m["role"], "content": m["content"]} for m in messages)
        try:
            response = self._client.chat.completions.create(
                model=vendor_model_id,
                max_tokens=max_tokens,
                messages=formatted,
            )
        except openai.APITimeoutError as exc:
            raise ProviderTimeoutError(self.provider.value, self.timeout) from exc
        except Exception as exc:
            raise ProviderError(self.provider.value, str(exc)) from exc

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        return ProviderReply(
            text=text,
            input_tokens=_token_count(usage, "prompt_tokens"),
            output_tokens=_token_count(usage, "completion_tokens"),
        )


ADAPTERS: dict[Provider, type[ProviderAdapter]] = {
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.OPENAI: OpenAIAdapter,
}
