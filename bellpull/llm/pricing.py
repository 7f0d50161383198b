"""Per-model token pricing for cost logging."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Rates:
    """USD per million tokens."""

    input: float
    output: float


# Matched by substring against the model id, first hit wins, so more
# specific keys ("haiku-3-5") must come before shorter ones ("haiku-3").
# https://docs.claude.com/en/docs/about-claude/pricing
MODEL_RATES: tuple[tuple[str, Rates], ...] = (
    ("opus-4-5", Rates(input=5, output=25)),
    ("opus-4-1", Rates(input=15, output=75)),
    ("opus-4-0", Rates(input=15, output=75)),
    ("sonnet-4-5", Rates(input=3, output=15)),
    ("sonnet-4-0", Rates(input=3, output=15)),
    ("sonnet-3-7", Rates(input=3, output=15)),
    ("haiku-4-5", Rates(input=1, output=5)),
    ("haiku-3-5", Rates(input=0.8, output=4)),
    ("opus-3", Rates(input=15, output=75)),
    ("haiku-3", Rates(input=0.25, output=1.25)),
)

# Sonnet pricing for anything unrecognised.
DEFAULT_RATES = Rates(input=3, output=15)


def get_rates(model: str) -> Rates:
    """Rates for the first table key contained in *model*."""
    for key, rates in MODEL_RATES:
        if key in model:
            return rates
    return DEFAULT_RATES


def _tokens(usage: Any, name: str) -> int:
    if isinstance(usage, Mapping):
        return usage.get(name) or 0
    return getattr(usage, name, 0) or 0


def estimate_cost(model: str, usage: Any) -> str:
    """Dollar cost of one call, e.g. ``"$0.0026"``.

    *usage* is the SDK ``Usage`` object or a dict with ``input_tokens`` and
    ``output_tokens``.
    """
    rates = get_rates(model)
    cost = (
        _tokens(usage, "input_tokens") / 1_000_000 * rates.input
        + _tokens(usage, "output_tokens") / 1_000_000 * rates.output
    )
    return f"${cost:.4f}"
