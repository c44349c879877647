"""
Initial liquidity market (ILM) type definitions
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Union

Number = Union[float, int, str, Decimal]


@dataclass(frozen=True)
class IlmConfig:
    """Sample counts for the curves and tables of an ILM plan"""
    price_curve_points_num: int = 101
    liquidity_distribution_num: int = 101
    tokens_table_num: int = 10
    price_table_num: int = 10


@dataclass(frozen=True)
class IlmInputOptions:
    """
    Launch curve parameters

    Attributes:
        curvature: Exponent k of the price curve, 0 for a flat launch
        initial_price: Price of the first token sold
        max_price: Price once the whole pool supply is sold
        bin_step: Bin step in basis points
        total_supply: Token total supply
        pool_share_percentage: Share of the supply placed in the pool (0-100]
        config: Sample counts
    """
    curvature: Number
    initial_price: Number
    max_price: Number
    bin_step: int
    total_supply: Number
    pool_share_percentage: Number
    config: IlmConfig = field(default_factory=IlmConfig)


@dataclass(frozen=True)
class Axis:
    x: float
    y: float


@dataclass
class CurveData:
    """Sampled curve; min_y/max_y always include 0"""
    data: List[Axis] = field(default_factory=list)
    min_y: float = 0.0
    max_y: float = 0.0

    @classmethod
    def from_points(cls, points: List[Axis]) -> "CurveData":
        ys = [p.y for p in points]
        return cls(data=points, min_y=min([0.0] + ys), max_y=max([0.0] + ys))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [{"x": p.x, "y": p.y} for p in self.data],
            "min_y": self.min_y,
            "max_y": self.max_y,
        }


@dataclass(frozen=True)
class TokenTableRow:
    """
    One row of an ILM lookup table

    Attributes:
        withdrawn: Tokens sold out of the pool
        price: Curve price at that point
        usdc_in_pool: Quote token paid into the pool so far
    """
    withdrawn: float
    price: float
    usdc_in_pool: float


@dataclass
class IlmResult:
    """
    ILM plan

    Attributes:
        price_curve: Price against tokens sold
        liquidity_curve: Token density against price
        dlmm_bins: Quote value placed in each bin, x is the bin price
        tokens_table: Rows at evenly spaced amounts sold
        price_table: Rows at evenly spaced prices
        initial_fdv: initial_price * total_supply
        final_fdv: max_price * total_supply
        usdc_in_pool: Quote token in the pool at the last price_table row
    """
    price_curve: CurveData
    liquidity_curve: CurveData
    dlmm_bins: CurveData
    tokens_table: List[TokenTableRow]
    price_table: List[TokenTableRow]
    initial_fdv: float
    final_fdv: float
    usdc_in_pool: float

    def to_dict(self) -> Dict[str, Any]:
        def rows(table: List[TokenTableRow]) -> List[Dict[str, float]]:
            return [{"withdrawn": r.withdrawn, "price": r.price, "usdc_in_pool": r.usdc_in_pool} for r in table]

        return {
            "price_curve": self.price_curve.to_dict(),
            "liquidity_curve": self.liquidity_curve.to_dict(),
            "dlmm_bins": self.dlmm_bins.to_dict(),
            "tokens_table": rows(self.tokens_table),
            "price_table": rows(self.price_table),
            "initial_fdv": self.initial_fdv,
            "final_fdv": self.final_fdv,
            "usdc_in_pool": self.usdc_in_pool,
        }
