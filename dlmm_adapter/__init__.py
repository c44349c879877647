"""
DLMM Adapter - Bin-based liquidity engine

Provides exact off-chain planning for DLMM positions:
- Bin price math (Q64.64 fixed point)
- Spot / Curve / BidAsk weight strategies
- Per-bin deposit and withdrawal allocation
- Composition fees on active bin deposits
- Single-coin zap in / zap out through a swap quote provider
- Initial liquidity market (ILM) launch curves
"""

from .types import (
    BinAmount,
    BinLiquidityInfo,
    StrategyType,
    BinStepConfig,
    VariableParameters,
    SwapResult,
    DepositOptions,
    DepositResult,
    BalancerState,
    WithdrawMode,
    TokenPrices,
    WithdrawOptions,
    WithdrawResult,
)
from .errors import (
    DlmmError,
    ErrorCode,
    InvalidBinId,
    InvalidBinWidth,
    InsufficientLiquidity,
    AmountTooSmall,
    InvalidStrategyParams,
    InvalidParams,
    SwapAmountError,
    AggregatorError,
)
from .modules import (
    ZapModule,
    calculate_add_liquidity_info,
    calculate_remove_liquidity_info,
    split_bin_liquidity_info,
)
from .protocols.aggregator import AggregatorAPI, QuoteProvider

__all__ = [
    # Types
    "BinAmount",
    "BinLiquidityInfo",
    "StrategyType",
    "BinStepConfig",
    "VariableParameters",
    "SwapResult",
    "DepositOptions",
    "DepositResult",
    "BalancerState",
    "WithdrawMode",
    "TokenPrices",
    "WithdrawOptions",
    "WithdrawResult",
    # Errors
    "DlmmError",
    "ErrorCode",
    "InvalidBinId",
    "InvalidBinWidth",
    "InsufficientLiquidity",
    "AmountTooSmall",
    "InvalidStrategyParams",
    "InvalidParams",
    "SwapAmountError",
    "AggregatorError",
    # Modules
    "ZapModule",
    "calculate_add_liquidity_info",
    "calculate_remove_liquidity_info",
    "split_bin_liquidity_info",
    # Quote providers
    "AggregatorAPI",
    "QuoteProvider",
]
