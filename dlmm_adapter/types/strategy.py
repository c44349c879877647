"""
Liquidity strategy type definitions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .bin import BinAmount


class StrategyType(Enum):
    """
    Liquidity shape across a bin range

    SPOT: flat, every bin weighted equally
    CURVE: peaked at the active bin, falling linearly to the range edges
    BID_ASK: valley at the active bin, rising linearly to the range edges
    """
    SPOT = 0
    CURVE = 1
    BID_ASK = 2

    @property
    def router_module(self) -> str:
        """Module name used by the on-chain router for this shape"""
        return {
            StrategyType.SPOT: "spot",
            StrategyType.CURVE: "curve",
            StrategyType.BID_ASK: "bid_ask",
        }[self]


@dataclass(frozen=True)
class BinWeight:
    """Relative weight assigned to one bin"""
    bin_id: int
    weight: int


@dataclass
class WeightsOptions:
    """
    Inputs to the integer weight engine

    Attributes:
        strategy_type: Distribution shape
        active_id: Current active bin of the pool
        bin_step: Bin step in basis points
        lower_bin_id: First bin of the range (inclusive)
        upper_bin_id: Last bin of the range (inclusive)
        total_amount_a: Token A to distribute
        total_amount_b: Token B to distribute
        active_bin_of_pool: Current composition of the pool's active bin, if known
    """
    strategy_type: StrategyType
    active_id: int
    bin_step: int
    lower_bin_id: int
    upper_bin_id: int
    total_amount_a: int
    total_amount_b: int
    active_bin_of_pool: Optional[BinAmount] = None


@dataclass
class WeightsInfo(WeightsOptions):
    """
    Weight engine output

    weights and weight_per_prices are indexed by bin_id - lower_bin_id.
    total_weight_b is in Q64 scale (bid weights << 64); total_weight_a and the
    weight_per_prices are in Q64 scale of token A (weight << 128 / q_price).
    active_weight_a/_b use the same scales.
    """
    total_weight_a: int = 0
    total_weight_b: int = 0
    active_weight_a: int = 0
    active_weight_b: int = 0
    weights: List[int] = field(default_factory=list)
    weight_per_prices: List[int] = field(default_factory=list)
