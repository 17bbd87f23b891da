"""Tests for services/providers.py — vendor call shape and usage normalization."""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from app.services.errors import ProviderError, ProviderTimeoutError
from app.services.providers import AnthropicAdapter, OpenAIAdapter, _token_count

HISTORY = [
    {"role": "user", "content": "Hi"},
    {"role": "assistant", "content": "Hello!"},
    {"role": "user", "content": "What is 2+2?"},
]


def _request():
    return httpx.Request("POST", "https://example.invalid/v1")


# ── Anthropic ─────────────────────────────────────────────────────────────────

class TestAnthropicAdapter:
    def _adapter(self, response=None, error=None):
        client = MagicMock()
        if error is not None:
            client.messages.create.side_effect = error
        else:
            client.messages.create.return_value = response
        return AnthropicAdapter(client, timeout=30.0), client

    def test_system_prompt_uses_native_channel(self):
        response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="4")],
            usage=SimpleNamespace(input_tokens=12, output_tokens=3),
        )
        adapter, client = self._adapter(response)

        reply = adapter.send("claude-3-haiku-20240307", 4096, "Be brief.", HISTORY)

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-haiku-20240307"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["system"] == "Be brief."
        assert kwargs["messages"] == HISTORY
        assert all(m["role"] != "system" for m in kwargs["messages"])
        assert reply.text == "4"
        assert reply.input_tokens == 12
        assert reply.output_tokens == 3

    def test_missing_usage_and_content_normalize_to_zero(self):
        adapter, _ = self._adapter(SimpleNamespace(content=[], usage=None))
        reply = adapter.send("m", 10, "s", HISTORY)
        assert reply.text == ""
        assert reply.input_tokens == 0
        assert reply.output_tokens == 0

    def test_timeout_maps_to_provider_timeout(self):
        adapter, _ = self._adapter(error=anthropic.APITimeoutError(request=_request()))
        with pytest.raises(ProviderTimeoutError) as exc:
            adapter.send("m", 10, "s", HISTORY)
        assert exc.value.provider == "anthropic"
        assert exc.value.timeout == 30.0

    def test_other_errors_are_opaque_provider_errors(self):
        adapter, _ = self._adapter(error=RuntimeError("overloaded"))
        with pytest.raises(ProviderError) as exc:
            adapter.send("m", 10, "s", HISTORY)
        assert not isinstance(exc.value, ProviderTimeoutError)
        assert "overloaded" in str(exc.value)

    def test_from_api_key_disables_sdk_retries(self):
        with patch("app.services.providers.anthropic.Anthropic") as mock_cls:
            adapter = AnthropicAdapter.from_api_key("sk-ant-test", 12.5)
        mock_cls.assert_called_once_with(api_key="sk-ant-test", timeout=12.5, max_retries=0)
        assert adapter.timeout == 12.5


# ── OpenAI ────────────────────────────────────────────────────────────────────

class TestOpenAIAdapter:
    def _adapter(self, response=None, error=None):
        client = MagicMock()
        if error is not None:
            client.chat.completions.create.side_effect = error
        else:
            client.chat.completions.create.return_value = response
        return OpenAIAdapter(client, timeout=30.0), client

    def test_system_prompt_is_leading_system_message(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="4"))],
            usage=SimpleNamespace(prompt_tokens=20, completion_tokens=1),
        )
        adapter, client = self._adapter(response)

        reply = adapter.send("gpt-4o", 4096, "Be brief.", HISTORY)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
        assert kwargs["messages"][1:] == HISTORY
        assert (reply.text, reply.input_tokens, reply.output_tokens) == ("4", 20, 1)

    def test_empty_choices(self):
        adapter, _ = self._adapter(SimpleNamespace(choices=[], usage=None))
        reply = adapter.send("gpt-4o", 10, "", HISTORY)
        assert reply.text == ""
        assert reply.input_tokens == 0

    def test_timeout_maps_to_provider_timeout(self):
        adapter, _ = self._adapter(error=openai.APITimeoutError(request=_request()))
        with pytest.raises(ProviderTimeoutError):
            adapter.send("gpt-4o", 10, "s", HISTORY)

    def test_api_error_is_provider_error(self):
        adapter, _ = self._adapter(error=ValueError("invalid api key"))
        with pytest.raises(ProviderError, match="invalid api key"):
            adapter.send("gpt-4o", 10, "s", HISTORY)


def test_token_count_accepts_dicts_and_objects():
    assert _token_count({"prompt_tokens": 7}, "prompt_tokens") == 7
    assert _token_count({"prompt_tokens": None}, "prompt_tokens") == 0
    assert _token_count(SimpleNamespace(output_tokens=5), "output_tokens") == 5
    assert _token_count(None, "output_tokens") == 0
