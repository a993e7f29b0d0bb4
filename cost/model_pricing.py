"""
Model Pricing Table

Static per-1K-token rates used by the metric estimator.
Prompt (input) and completion (output) tokens are priced separately.

DESIGN RULES:
- Configuration only, no logic beyond lookup
- Estimates, not billing-grade figures
"""

from typing import Dict


# USD per 1K tokens
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-3.5-turbo": {
        "input_per_1k": 0.0005,
        "output_per_1k": 0.0015,
    },
    "gpt-35-turbo": {
        "input_per_1k": 0.0005,
        "output_per_1k": 0.0015,
    },
    "gpt-4o-mini": {
        "input_per_1k": 0.00015,
        "output_per_1k": 0.0006,
    },
    "gpt-4o": {
        "input_per_1k": 0.0025,
        "output_per_1k": 0.01,
    },
    "gemini-pro": {
        "input_per_1k": 0.0005,
        "output_per_1k": 0.0015,
    },
}

# Flat fallback rate for models not in the table
DEFAULT_PRICING: Dict[str, float] = {
    "input_per_1k": 0.0015,
    "output_per_1k": 0.002,
}


def get_pricing(model: str) -> Dict[str, float]:
    """
    Get pricing for a model.

    Deployment names such as 'my-gpt-4o-deployment' resolve to the longest
    known model name they contain.
    """
    if not model:
        return DEFAULT_PRICING

    if model in MODEL_PRICING:
        return MODEL_PRICING[model]

    model_lower = model.lower()
    matches = [known for known in MODEL_PRICING if known in model_lower]
    if matches:
        return MODEL_PRICING[max(matches, key=len)]

    return DEFAULT_PRICING
