"""
Metric Estimator

Maps prompt/response text lengths to an approximate token count and cost.

DESIGN RULES:
- Pure function, no side effects
- Fixed 4-characters-per-token heuristic (NOT a tokenizer)
- Never throws; empty strings yield zero
"""

import math
from dataclasses import dataclass
from typing import Optional

from cost.model_pricing import get_pricing


CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class MetricEstimate:
    """
    Approximate usage figures for one call.

    tokens_used is the combined estimate. input_tokens and output_tokens are
    estimated per side for pricing, so their sum can exceed tokens_used by one.
    """

    tokens_used: int
    cost_usd: float
    input_tokens: int
    output_tokens: int


def estimate_tokens(text: str) -> int:
    """Approximate token count for a single piece of text."""
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def estimate(
    prompt_text: str,
    response_text: str,
    model: Optional[str] = None,
) -> MetricEstimate:
    """
    Estimate tokens and cost for a prompt/response pair.

    Args:
        prompt_text: Text sent to the provider
        response_text: Text returned by the provider
        model: Model name used to select input/output rates (optional)

    Returns:
        MetricEstimate with tokens_used = ceil((len(prompt) + len(response)) / 4)
    """
    prompt_text = prompt_text or ""
    response_text = response_text or ""

    tokens_used = math.ceil((len(prompt_text) + len(response_text)) / CHARS_PER_TOKEN)

    input_tokens = estimate_tokens(prompt_text)
    output_tokens = estimate_tokens(response_text)

    pricing = get_pricing(model or "")
    input_cost = (input_tokens / 1000) * pricing["input_per_1k"]
    output_cost = (output_tokens / 1000) * pricing["output_per_1k"]

    return MetricEstimate(
        tokens_used=tokens_used,
        cost_usd=input_cost + output_cost,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )
