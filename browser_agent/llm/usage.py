"""
Usage Tracking
==============

Accumulates token usage across a run and derives a cost estimate.

Counters only grow; they are never reset during a run and never feed back
into retry or control-flow decisions.

Usage:
    tracker = UsageTracker.per_million(input_price=3.00, output_price=12.00)
    tracker.record(1200, 85)
    print(tracker.estimated_cost())
"""

from typing import Any, Optional

# Default prices in USD per token
DEFAULT_INPUT_PRICE = 3.00 / 1_000_000
DEFAULT_OUTPUT_PRICE = 12.00 / 1_000_000


def _count(value: Optional[int]) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


class UsageTracker:
    """Running totals of input and output tokens with a fixed price table."""

    def __init__(
        self,
        price_per_input: float = DEFAULT_INPUT_PRICE,
        price_per_output: float = DEFAULT_OUTPUT_PRICE,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            price_per_input: Price of one input token.
            price_per_output: Price of one output token.
        """
        self.price_per_input = price_per_input
        self.price_per_output = price_per_output
        self.input_tokens = 0
        self.output_tokens = 0
        self.responses = 0

    @classmethod
    def per_million(cls, input_price: float, output_price: float) -> "UsageTracker":
        """Build a tracker from prices quoted per million tokens."""
        return cls(input_price / 1_000_000, output_price / 1_000_000)

    def record(self, input_tokens: Optional[int], output_tokens: Optional[int]) -> None:
        """
        Add one response's usage to the totals.

        Missing or negative counts are treated as zero.
        """
        self.input_tokens += _count(input_tokens)
        self.output_tokens += _count(output_tokens)
        self.responses += 1

    def cost_of(self, input_tokens: int, output_tokens: int) -> float:
        """Cost of the given token counts at this tracker's prices."""
        return input_tokens * self.price_per_input + output_tokens * self.price_per_output

    def estimated_cost(self) -> float:
        """Cost of everything recorded so far."""
        return self.cost_of(self.input_tokens, self.output_tokens)

    def summary(self) -> dict[str, Any]:
        """Totals for reporting."""
        return {
            "responses": self.responses,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost_usd": round(self.estimated_cost(), 6),
        }
