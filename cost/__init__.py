# Cost Package
from cost.model_pricing import MODEL_PRICING, DEFAULT_PRICING, get_pricing
from cost.estimator import MetricEstimate, estimate, estimate_tokens

__all__ = [
    "MODEL_PRICING",
    "DEFAULT_PRICING",
    "get_pricing",
    "MetricEstimate",
    "estimate",
    "estimate_tokens",
]
