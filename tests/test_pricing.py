"""Tests for per-model cost estimates."""

from types import SimpleNamespace

import pytest

from bellpull.llm.pricing import DEFAULT_RATES, estimate_cost, get_rates


def _usage(input_tokens: int, output_tokens: int) -> SimpleNamespace:
    return SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens)


@pytest.mark.parametrize(
    ("model", "usage", "expected"),
    [
        # 50K @ $3 + 2K @ $15 = $0.15 + $0.03
        ("claude-sonnet-4-5-20250514", _usage(50_000, 2_000), "$0.1800"),
        # 100K @ $0.80 + 10K @ $4 = $0.08 + $0.04
        ("claude-haiku-3-5-20241022", _usage(100_000, 10_000), "$0.1200"),
        # 10K @ $5 + 4K @ $25 = $0.05 + $0.10
        ("claude-opus-4-5-20250514", _usage(10_000, 4_000), "$0.1500"),
        # Unknown models fall back to sonnet pricing
        ("claude-unknown-model", _usage(50_000, 2_000), "$0.1800"),
        # 1089 @ $0.80 + 423 @ $4
        ("claude-haiku-3-5-20241022", _usage(1089, 423), "$0.0026"),
    ],
)
def test_estimate_cost(model, usage, expected) -> None:
    assert estimate_cost(model, usage) == expected


def test_accepts_dict_usage() -> None:
    usage = {"input_tokens": 1089, "output_tokens": 423}
    assert estimate_cost("claude-haiku-3-5-20241022", usage) == "$0.0026"


def test_specific_key_wins_over_prefix() -> None:
    assert get_rates("claude-3-haiku-3-5").input == 0.8
    assert get_rates("claude-haiku-3-20240307").input == 0.25


def test_unknown_model_uses_default() -> None:
    assert get_rates("gpt-4") is DEFAULT_RATES
