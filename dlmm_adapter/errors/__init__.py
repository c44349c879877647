"""
Error definitions for the DLMM liquidity engine
"""

from .exceptions import (
    ErrorCode,
    DlmmError,
    InvalidBinId,
    InvalidBinWidth,
    InsufficientLiquidity,
    AmountTooSmall,
    InvalidDeltaLiquidity,
    LiquiditySupplyIsZero,
    InvalidStrategyParams,
    InvalidParams,
    SwapAmountError,
    AggregatorError,
    ConfigurationError,
)

__all__ = [
    "ErrorCode",
    "DlmmError",
    "InvalidBinId",
    "InvalidBinWidth",
    "InsufficientLiquidity",
    "AmountTooSmall",
    "InvalidDeltaLiquidity",
    "LiquiditySupplyIsZero",
    "InvalidStrategyParams",
    "InvalidParams",
    "SwapAmountError",
    "AggregatorError",
    "ConfigurationError",
]
