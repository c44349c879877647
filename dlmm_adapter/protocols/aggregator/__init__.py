"""
Swap Aggregator Quote Providers

Provides swap quotes used to balance single-coin deposits and withdrawals.
"""

from .base import QuoteProvider
from .api import AggregatorAPI

__all__ = [
    "QuoteProvider",
    "AggregatorAPI",
]
