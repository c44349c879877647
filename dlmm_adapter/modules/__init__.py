"""
Functional modules

Provides high-level planning operations:
- liquidity: Deposit / withdrawal allocation over a bin range
- ZapModule: Single-coin deposits and withdrawals balanced through swaps
"""

from .liquidity import (
    calculate_add_liquidity_info,
    calculate_remove_liquidity_info,
    process_bins_by_rate,
    get_position_count,
    split_bin_liquidity_info,
    validate_bin_width,
)
from .zap import ZapModule, calculate_liquidity_amount_enough, calculate_liquidity_amount_side

__all__ = [
    # Liquidity
    "calculate_add_liquidity_info",
    "calculate_remove_liquidity_info",
    "process_bins_by_rate",
    "get_position_count",
    "split_bin_liquidity_info",
    "validate_bin_width",
    # Zap
    "ZapModule",
    "calculate_liquidity_amount_enough",
    "calculate_liquidity_amount_side",
]
