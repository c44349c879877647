"""
DLMM Strategy Allocation

Converts to_weight() output into per-bin token amounts and implements the
two-pass auto fill: a decimal first pass over a BinWeight distribution to
estimate the other token, then an exact integer pass over to_weight().
"""

import logging
from decimal import Decimal, localcontext
from typing import Optional

from ...types import BinAmount, BinLiquidityInfo, StrategyType, WeightsInfo, WeightsOptions
from .constants import ACTIVE_WEIGHT_EPSILON, PRICE_PRECISION
from .math import get_liquidity, get_price_per_lamport_from_bin_id, get_q_price_from_id, safe_div
from .weights import Q64, Q128, auto_fill_coin_by_weight, to_amount_both_side, to_weight, to_weight_by_strategy

logger = logging.getLogger(__name__)


def to_amounts_by_weights(weights_info: WeightsInfo) -> BinLiquidityInfo:
    """
    Allocate total_amount_a/_b over the bins of a WeightsInfo

    ky = total_b * 2^128 / total_weight_b and kx = total_a * 2^128 / total_weight_a
    are the per-weight amounts (zero when a side carries no weight).
    """
    active_id = weights_info.active_id
    bin_step = weights_info.bin_step
    total_weight_a = weights_info.total_weight_a
    total_weight_b = weights_info.total_weight_b

    ky = weights_info.total_amount_b * Q128 // total_weight_b if total_weight_b > 0 else 0
    kx = weights_info.total_amount_a * Q128 // total_weight_a if total_weight_a > 0 else 0

    bins = []
    for offset, weight in enumerate(weights_info.weights):
        bin_id = weights_info.lower_bin_id + offset
        if bin_id == active_id:
            amount_a = safe_div(kx * weights_info.active_weight_a, Q128)
            amount_b = safe_div(ky * weights_info.active_weight_b, Q128)
        elif bin_id < active_id:
            amount_a = 0
            amount_b = safe_div(ky * weight, Q64)
        else:
            amount_a = safe_div(kx * weights_info.weight_per_prices[offset], Q128)
            amount_b = 0

        q_price = get_q_price_from_id(bin_id, bin_step)
        bins.append(BinAmount(
            bin_id=bin_id,
            amount_a=amount_a,
            amount_b=amount_b,
            price_per_lamport=get_price_per_lamport_from_bin_id(bin_id, bin_step),
            liquidity=get_liquidity(amount_a, amount_b, q_price),
        ))

    return BinLiquidityInfo(bins=bins)


def to_amounts_both_side_by_strategy(
    active_id: int,
    bin_step: int,
    lower_bin_id: int,
    upper_bin_id: int,
    amount_a: int,
    amount_b: int,
    strategy_type: StrategyType,
    active_bin_of_pool: Optional[BinAmount] = None,
) -> BinLiquidityInfo:
    """Deposit exact amounts of both tokens"""
    weights_info = to_weight(WeightsOptions(
        strategy_type=strategy_type,
        active_id=active_id,
        bin_step=bin_step,
        lower_bin_id=lower_bin_id,
        upper_bin_id=upper_bin_id,
        total_amount_a=amount_a,
        total_amount_b=amount_b,
        active_bin_of_pool=active_bin_of_pool,
    ))
    return to_amounts_by_weights(weights_info)


def auto_fill_coin_by_strategy(
    active_id: int,
    bin_step: int,
    amount: int,
    fix_amount_a: bool,
    lower_bin_id: int,
    upper_bin_id: int,
    strategy_type: StrategyType,
    active_bin_of_pool: Optional[BinAmount] = None,
) -> BinLiquidityInfo:
    """First pass: decimal auto fill over the strategy's BinWeight distribution"""
    distributions = to_weight_by_strategy(strategy_type, lower_bin_id, upper_bin_id, active_id)
    return auto_fill_coin_by_weight(
        active_id,
        bin_step,
        amount,
        fix_amount_a,
        active_bin_of_pool.amount_a if active_bin_of_pool else 0,
        active_bin_of_pool.amount_b if active_bin_of_pool else 0,
        distributions,
    )


def auto_fill_coin_by_strategy_v2(
    active_id: int,
    bin_step: int,
    amount: int,
    fix_amount_a: bool,
    lower_bin_id: int,
    upper_bin_id: int,
    strategy_type: StrategyType,
    active_bin_of_pool: Optional[BinAmount] = None,
) -> BinLiquidityInfo:
    """
    Fill the other token for a fixed amount, allocated by the integer engine

    The first pass only decides how much of the other token is needed; the
    fixed side keeps exactly the caller's amount for the second pass.
    """
    first_pass = auto_fill_coin_by_strategy(
        active_id,
        bin_step,
        amount,
        fix_amount_a,
        lower_bin_id,
        upper_bin_id,
        strategy_type,
        active_bin_of_pool,
    )

    total_amount_a = amount if fix_amount_a else first_pass.amount_a
    total_amount_b = first_pass.amount_b if fix_amount_a else amount

    weights_info = to_weight(WeightsOptions(
        strategy_type=strategy_type,
        active_id=active_id,
        bin_step=bin_step,
        lower_bin_id=lower_bin_id,
        upper_bin_id=upper_bin_id,
        total_amount_a=total_amount_a,
        total_amount_b=total_amount_b,
        active_bin_of_pool=active_bin_of_pool,
    ))
    result = to_amounts_by_weights(weights_info)

    _check_pass_divergence(first_pass, result, fix_amount_a)
    return result


def _check_pass_divergence(first_pass: BinLiquidityInfo, second_pass: BinLiquidityInfo, fix_amount_a: bool) -> None:
    expected = first_pass.amount_b if fix_amount_a else first_pass.amount_a
    actual = second_pass.amount_b if fix_amount_a else second_pass.amount_a
    if expected == 0:
        return

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        divergence = abs(Decimal(actual - expected)) / Decimal(expected)

    if divergence > Decimal(ACTIVE_WEIGHT_EPSILON):
        logger.warning(
            f"Auto fill passes diverge: expected other side {expected}, allocated {actual} "
            f"(relative gap {divergence:.8f})"
        )
