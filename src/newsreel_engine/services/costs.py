"""Model pricing and cost log entries.

Token counters returned by the generation API are advisory. When they are
zero or missing, model-tier estimates are billed instead.
"""

import math
from dataclasses import dataclass

from newsreel_engine.domain.enums import CostLogType


@dataclass(frozen=True)
class ModelPricing:
    """USD pricing for one model."""

    input_per_million: float = 0.0
    output_per_million: float = 0.0
    flat_per_call: float | None = None  # image models bill per image
    estimated_output_tokens: int = 0


MODEL_PRICING: dict[str, ModelPricing] = {
    # Image generation, flat per generated image
    "gemini-3-pro-image-preview": ModelPricing(flat_per_call=0.24, estimated_output_tokens=2000),
    "gemini-2.5-flash-image": ModelPricing(flat_per_call=0.039, estimated_output_tokens=1290),
    # Narration
    "gemini-2.5-flash-preview-tts": ModelPricing(input_per_million=0.5, output_per_million=10.0),
    "gemini-2.5-pro-preview-tts": ModelPricing(input_per_million=1.0, output_per_million=20.0),
    # Policy review
    "gemini-3-flash-preview": ModelPricing(input_per_million=0.5, output_per_million=3.0),
    "gemini-3-pro-preview": ModelPricing(input_per_million=2.0, output_per_million=12.0),
}

# Gemini bills generated speech at 32 tokens per second
AUDIO_TOKENS_PER_SECOND = 32
CHARS_PER_TEXT_TOKEN = 4


@dataclass
class CostEntry:
    """One billable generation call, ready for the cost log."""

    log_type: CostLogType
    model_id: str
    input_tokens: int
    output_tokens: int
    cost: float
    estimated: bool = False


def get_pricing(model_id: str) -> ModelPricing:
    try:
        return MODEL_PRICING[model_id]
    except KeyError:
        raise ValueError(f"No pricing configured for model: {model_id}") from None


def token_cost(model_id: str, input_tokens: int, output_tokens: int) -> float:
    """Per-million token pricing."""
    pricing = get_pricing(model_id)
    return (
        input_tokens * pricing.input_per_million + output_tokens * pricing.output_per_million
    ) / 1_000_000


def estimate_text_tokens(text: str) -> int:
    return max(1, math.ceil(len(text) / CHARS_PER_TEXT_TOKEN))


def image_cost_entry(
    model_id: str,
    input_tokens: int | None,
    output_tokens: int | None,
    image_count: int = 1,
) -> CostEntry:
    """Cost of one image generation call (one grid or one slide)."""
    pricing = get_pricing(model_id)
    estimated = not output_tokens
    output = output_tokens or pricing.estimated_output_tokens * image_count
    cost = (
        pricing.flat_per_call * image_count
        if pricing.flat_per_call is not None
        else token_cost(model_id, input_tokens or 0, output)
    )
    return CostEntry(
        log_type=CostLogType.IMAGE_GENERATION,
        model_id=model_id,
        input_tokens=input_tokens or 0,
        output_tokens=output,
        cost=cost,
        estimated=estimated,
    )


def audio_cost_entry(
    model_id: str,
    input_tokens: int | None,
    output_tokens: int | None,
    text: str,
    duration_ms: int,
) -> CostEntry:
    """Cost of one narration call, estimating tokens from text and duration if absent."""
    estimated = not input_tokens or not output_tokens
    input_count = input_tokens or estimate_text_tokens(text)
    output_count = output_tokens or math.ceil(duration_ms / 1000 * AUDIO_TOKENS_PER_SECOND)
    return CostEntry(
        log_type=CostLogType.AUDIO_GENERATION,
        model_id=model_id,
        input_tokens=input_count,
        output_tokens=output_count,
        cost=token_cost(model_id, input_count, output_count),
        estimated=estimated,
    )


def policy_cost_entry(
    log_type: CostLogType,
    model_id: str,
    input_tokens: int,
    output_tokens: int,
) -> CostEntry:
    return CostEntry(
        log_type=log_type,
        model_id=model_id,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=token_cost(model_id, input_tokens, output_tokens),
    )
