"""
Quote provider interface
"""

from typing import Protocol, runtime_checkable

from ...types import SwapResult


@runtime_checkable
class QuoteProvider(Protocol):
    """
    Anything that can quote an exact-input swap

    Implementations raise AggregatorError when no route exists or the
    backend fails.
    """

    async def find_route(self, from_token: str, to_token: str, amount: int) -> SwapResult:
        ...
