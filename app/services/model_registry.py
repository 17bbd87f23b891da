"""
Static catalog of chat models: public model id -> provider, vendor model id,
output token ceiling and per-1k-token prices. Pure lookups, no I/O.
"""
import enum
from dataclasses import dataclass
from typing import Iterable

from app.services.errors import UnknownModelError


class Provider(str, enum.Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass(frozen=True)
class ModelConfig:
    model_id: str
    provider: Provider
    vendor_model_id: str
    max_tokens: int
    input_cost_per_1k: float
    output_cost_per_1k: float


MODELS: dict[str, ModelConfig] = {
    "claude-3-5-sonnet": ModelConfig(
        model_id="claude-3-5-sonnet",
        provider=Provider.ANTHROPIC,
        vendor_model_id="claude-3-5-sonnet-20241022",
        max_tokens=8192,
        input_cost_per_1k=0.003,
        output_cost_per_1k=0.015,
    ),
    "claude-3-haiku": ModelConfig(
        model_id="claude-3-haiku",
        provider=Provider.ANTHROPIC,
        vendor_model_id="claude-3-haiku-20240307",
        max_tokens=4096,
        input_cost_per_1k=0.00025,
        output_cost_per_1k=0.00125,
    ),
    "gpt-4o": ModelConfig(
        model_id="gpt-4o",
        provider=Provider.OPENAI,
        vendor_model_id="gpt-4o",
        max_tokens=4096,
        input_cost_per_1k=0.005,
        output_cost_per_1k=0.015,
    ),
    "gpt-4o-mini": ModelConfig(
        model_id="gpt-4o-mini",
        provider=Provider.OPENAI,
        vendor_model_id="gpt-4o-mini",
        max_tokens=4096,
        input_cost_per_1k=0.00015,
        output_cost_per_1k=0.0006,
    ),
}

# Balanced tier; used when the caller does not name a model
DEFAULT_MODEL = "claude-3-5-sonnet"


def resolve(model_id: str) -> ModelConfig:
    """Return the catalog entry for model_id. Raises UnknownModelError if absent."""
    config = MODELS.get(model_id)
    if config is None:
        raise UnknownModelError(model_id)
    return config


def list_available(configured: Iterable[Provider]) -> list[str]:
    """Model ids whose provider has a credential, in catalog order."""
    providers = set(configured)
    return [model_id for model_id, cfg in MODELS.items() if cfg.provider in providers]
