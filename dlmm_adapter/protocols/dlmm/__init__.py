"""
DLMM Protocol Math

Pure functions for bin prices, strategy weights, per-bin allocation,
composition fees, the single-coin swap amount search and the ILM
launch curve.
"""

from .constants import (
    BIN_BOUND,
    MAX_BIN_ID,
    MAX_BIN_PER_POSITION,
    MIN_BIN_ID,
    DEFAULT_MAX_WEIGHT,
    DEFAULT_MIN_WEIGHT,
    FEE_PRECISION,
    MAX_FEE_RATE,
)
from .math import (
    round_half_up,
    pow_q64,
    get_q_price_from_id,
    get_price_per_lamport_from_bin_id,
    get_bin_id_from_lamport_price,
    get_price_per_lamport,
    get_price_from_lamport,
    get_price_from_bin_id,
    get_bin_id_from_price,
    get_reverse_price,
    price_range_to_bin_range,
    validate_bin_id,
    bin_score,
    score_to_bin_id,
    resolve_bin_position,
    find_min_max_bin_id,
    get_bin_shift,
    get_liquidity,
    get_amounts_from_liquidity,
    calculate_out_by_share,
)
from .weights import (
    to_weight,
    to_weight_by_strategy,
    calculate_total_weights,
    to_amount_bid_side,
    to_amount_ask_side,
    to_amount_both_side,
    auto_fill_coin_by_weight,
)
from .strategy import (
    to_amounts_by_weights,
    to_amounts_both_side_by_strategy,
    auto_fill_coin_by_strategy,
    auto_fill_coin_by_strategy_v2,
)
from .fees import (
    get_base_fee,
    get_variable_fee,
    get_total_fee_rate,
    calculate_composition_fee,
    get_protocol_fees,
    get_composition_fees,
)
from .zap import calc_exact_swap_amount
from .ilm import IlmCurve, calculate_ilm

__all__ = [
    # Constants
    "BIN_BOUND",
    "MAX_BIN_ID",
    "MAX_BIN_PER_POSITION",
    "MIN_BIN_ID",
    "DEFAULT_MAX_WEIGHT",
    "DEFAULT_MIN_WEIGHT",
    "FEE_PRECISION",
    "MAX_FEE_RATE",
    # Math
    "round_half_up",
    "pow_q64",
    "get_q_price_from_id",
    "get_price_per_lamport_from_bin_id",
    "get_bin_id_from_lamport_price",
    "get_price_per_lamport",
    "get_price_from_lamport",
    "get_price_from_bin_id",
    "get_bin_id_from_price",
    "get_reverse_price",
    "price_range_to_bin_range",
    "validate_bin_id",
    "bin_score",
    "score_to_bin_id",
    "resolve_bin_position",
    "find_min_max_bin_id",
    "get_bin_shift",
    "get_liquidity",
    "get_amounts_from_liquidity",
    "calculate_out_by_share",
    # Weights
    "to_weight",
    "to_weight_by_strategy",
    "calculate_total_weights",
    "to_amount_bid_side",
    "to_amount_ask_side",
    "to_amount_both_side",
    "auto_fill_coin_by_weight",
    # Strategy
    "to_amounts_by_weights",
    "to_amounts_both_side_by_strategy",
    "auto_fill_coin_by_strategy",
    "auto_fill_coin_by_strategy_v2",
    # Fees
    "get_base_fee",
    "get_variable_fee",
    "get_total_fee_rate",
    "calculate_composition_fee",
    "get_protocol_fees",
    "get_composition_fees",
    # Zap
    "calc_exact_swap_amount",
    # ILM
    "IlmCurve",
    "calculate_ilm",
]
