import math

import pytest

from cost.estimator import CHARS_PER_TOKEN, estimate, estimate_tokens
from cost.model_pricing import DEFAULT_PRICING, MODEL_PRICING, get_pricing


@pytest.mark.parametrize(
    "prompt, response",
    [
        ("", ""),
        ("a", ""),
        ("abcd", "e"),
        ("x" * 1001, "y" * 3),
        ("What hospitals are in the database?", "There are 3 hospitals."),
    ],
)
def test_tokens_formula(prompt, response):
    """Test: tokens_used == ceil((len(prompt) + len(response)) / 4)."""
    result = estimate(prompt, response)
    assert result.tokens_used == math.ceil((len(prompt) + len(response)) / CHARS_PER_TOKEN)


def test_empty_strings_cost_nothing():
    result = estimate("", "")
    assert result.tokens_used == 0
    assert result.cost_usd == 0.0


def test_cost_monotonic_in_both_lengths():
    """Test: cost never decreases as either side grows."""
    previous = -1.0
    for n in range(0, 40):
        cost = estimate("p" * n, "r" * 7).cost_usd
        assert cost >= 0.0
        assert cost >= previous
        previous = cost

    previous = -1.0
    for n in range(0, 40):
        cost = estimate("p" * 7, "r" * n).cost_usd
        assert cost >= previous
        previous = cost


def test_output_priced_separately_from_input():
    pricing = get_pricing("gpt-4o")
    prompt_only = estimate("p" * 4000, "", model="gpt-4o")
    response_only = estimate("", "r" * 4000, model="gpt-4o")

    assert prompt_only.cost_usd == pytest.approx(pricing["input_per_1k"])
    assert response_only.cost_usd == pytest.approx(pricing["output_per_1k"])


def test_unknown_model_uses_default_pricing():
    assert get_pricing("some-local-model") == DEFAULT_PRICING
    assert get_pricing("") == DEFAULT_PRICING


def test_deployment_names_resolve_to_longest_known_model():
    assert get_pricing("prod-gpt-4o-mini-eastus") == MODEL_PRICING["gpt-4o-mini"]
    assert get_pricing("GPT-4o") == MODEL_PRICING["gpt-4o"]


def test_estimate_tokens_handles_none():
    assert estimate_tokens(None) == 0
    assert estimate_tokens("abcde") == 2
