"""
Type definitions for the DLMM liquidity engine
"""

from .bin import BinAmount, BinLiquidityInfo
from .fee import BinStepConfig, VariableParameters, FeeRate
from .strategy import StrategyType, BinWeight, WeightsOptions, WeightsInfo
from .zap import (
    SwapResult,
    ExactSwapAmount,
    LiquidityAmountResult,
    BalancerState,
    BalanceSwapResult,
    DepositOptions,
    DepositResult,
    WithdrawMode,
    TokenPrices,
    WithdrawOptions,
    WithdrawAvailableAmount,
    WithdrawResult,
)
from .ilm import IlmConfig, IlmInputOptions, Axis, CurveData, TokenTableRow, IlmResult

__all__ = [
    # Bins
    "BinAmount",
    "BinLiquidityInfo",
    # Fees
    "BinStepConfig",
    "VariableParameters",
    "FeeRate",
    # Strategy
    "StrategyType",
    "BinWeight",
    "WeightsOptions",
    "WeightsInfo",
    # Zap
    "SwapResult",
    "ExactSwapAmount",
    "LiquidityAmountResult",
    "BalancerState",
    "BalanceSwapResult",
    "DepositOptions",
    "DepositResult",
    "WithdrawMode",
    "TokenPrices",
    "WithdrawOptions",
    "WithdrawAvailableAmount",
    "WithdrawResult",
    # ILM
    "IlmConfig",
    "IlmInputOptions",
    "Axis",
    "CurveData",
    "TokenTableRow",
    "IlmResult",
]
