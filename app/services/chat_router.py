"""
Chat router: model id -> registry entry -> provider adapter -> ChatResult with cost.
Adapters exist only for providers that have a credential; the registry maps each
model to a Provider member, so there is no string branching at call sites.
"""
import logging
from dataclasses import dataclass

from app.config import Settings
from app.services import model_registry
from app.services.errors import ProviderUnconfiguredError
from app.services.model_registry import ModelConfig, Provider
from app.services.providers import ADAPTERS, ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderCredentials:
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderCredentials":
        return cls(
            anthropic_api_key=settings.anthropic_api_key,
            openai_api_key=settings.openai_api_key,
        )

    def for_provider(self, provider: Provider) -> str:
        if provider is Provider.ANTHROPIC:
            return self.anthropic_api_key
        return self.openai_api_key


@dataclass
class ChatResult:
    content: str
    model: str  # vendor model id
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float

    def usage(self) -> dict:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost,
        }


def compute_cost(config: ModelConfig, input_tokens: int, output_tokens: int) -> float:
    """Cost from registry prices, never from a vendor-reported value."""
    return (
        input_tokens / 1000 * config.input_cost_per_1k
        + output_tokens / 1000 * config.output_cost_per_1k
    )


class ChatRouter:
    def __init__(self, adapters: dict[Provider, ProviderAdapter]):
        self._adapters = dict(adapters)

    @classmethod
    def from_credentials(cls, credentials: ProviderCredentials, timeout: float) -> "ChatRouter":
        adapters: dict[Provider, ProviderAdapter] = {}
        for provider, adapter_cls in ADAPTERS.items():
            api_key = credentials.for_provider(provider)
            if api_key:
                adapters[provider] = adapter_cls.from_api_key(api_key, timeout)
        logger.info(
            "Chat providers configured: %s",
            ", ".join(p.value for p in adapters) or "none",
        )
        return cls(adapters)

    @property
    def configured_providers(self) -> set[Provider]:
        return set(self._adapters)

    def available_models(self) -> list[str]:
        return model_registry.list_available(self._adapters)

    def chat(self, model_id: str, messages: list[dict], system_prompt: str) -> ChatResult:
        """
        Dispatch one exchange. Raises UnknownModelError, ProviderUnconfiguredError
        (before any network call) or ProviderError / ProviderTimeoutError from the adapter.
        """
        config = model_registry.resolve(model_id)
        adapter = self._adapters.get(config.provider)
        if adapter is None:
            raise ProviderUnconfiguredError(config.provider.value, model_id)

        reply = adapter.send(config.vendor_model_id, config.max_tokens, system_prompt, messages)
        return ChatResult(
            content=reply.text,
            model=config.vendor_model_id,
            input_tokens=reply.input_tokens,
            output_tokens=reply.output_tokens,
            total_tokens=reply.input_tokens + reply.output_tokens,
            cost=compute_cost(config, reply.input_tokens, reply.output_tokens),
        )
