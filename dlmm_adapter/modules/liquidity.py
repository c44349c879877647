"""
Liquidity Module

Entry points for planning deposits into and withdrawals from a bin range:
- calculate_add_liquidity_info: per-bin amounts for a deposit, net of the
  composition fee charged in the active bin
- calculate_remove_liquidity_info: per-bin amounts for a partial withdrawal
- split_bin_liquidity_info: split a wide allocation into position-sized chunks
"""

import logging
from decimal import Decimal, localcontext
from typing import List, Optional

from ..errors import InsufficientLiquidity, InvalidBinWidth, InvalidParams
from ..protocols.dlmm.constants import MAX_BIN_PER_POSITION, PRICE_PRECISION
from ..protocols.dlmm.fees import get_composition_fees
from ..protocols.dlmm.math import get_liquidity, get_q_price_from_id, round_half_up, validate_bin_id
from ..protocols.dlmm.strategy import auto_fill_coin_by_strategy_v2, to_amounts_both_side_by_strategy
from ..types import BinAmount, BinLiquidityInfo, StrategyType, VariableParameters

logger = logging.getLogger(__name__)


# =============================================================================
# Range helpers
# =============================================================================

def get_position_count(lower_bin_id: int, upper_bin_id: int) -> int:
    """Number of positions needed to cover a range"""
    width = upper_bin_id - lower_bin_id + 1
    return -(-width // MAX_BIN_PER_POSITION)


def validate_bin_width(lower_bin_id: int, upper_bin_id: int) -> None:
    """
    Check that a range fits in a single position

    Raises:
        InvalidParams: lower_bin_id above upper_bin_id
        InvalidBinWidth: more than MAX_BIN_PER_POSITION bins
    """
    if lower_bin_id > upper_bin_id:
        raise InvalidParams.invalid("lower_bin_id", f"{lower_bin_id} is above upper_bin_id {upper_bin_id}")
    width = upper_bin_id - lower_bin_id + 1
    if width > MAX_BIN_PER_POSITION:
        raise InvalidBinWidth.too_wide(width, MAX_BIN_PER_POSITION)


def split_bin_liquidity_info(
    liquidity_bins: BinLiquidityInfo,
    lower_bin_id: int,
    upper_bin_id: int,
) -> List[BinLiquidityInfo]:
    """
    Split an allocation into consecutive position-sized chunks

    Every chunk covers at most MAX_BIN_PER_POSITION bins and the chunks
    together cover [lower_bin_id, upper_bin_id] without gaps or overlap.
    """
    position_count = get_position_count(lower_bin_id, upper_bin_id)
    if position_count <= 1:
        return [liquidity_bins]

    positions = []
    current_lower = lower_bin_id
    for _ in range(position_count):
        current_upper = min(current_lower + MAX_BIN_PER_POSITION - 1, upper_bin_id)
        validate_bin_width(current_lower, current_upper)
        position_bins = [b for b in liquidity_bins.bins if current_lower <= b.bin_id <= current_upper]
        positions.append(BinLiquidityInfo(bins=position_bins))
        current_lower = current_upper + 1

    logger.debug(f"Split bins {lower_bin_id}..{upper_bin_id} into {len(positions)} positions")
    return positions


# =============================================================================
# Deposit
# =============================================================================

def calculate_add_liquidity_info(
    strategy_type: StrategyType,
    active_id: int,
    bin_step: int,
    lower_bin_id: int,
    upper_bin_id: int,
    amount_a: Optional[int] = None,
    amount_b: Optional[int] = None,
    coin_amount: Optional[int] = None,
    fix_amount_a: Optional[bool] = None,
    active_bin_of_pool: Optional[BinAmount] = None,
    variable_parameters: Optional[VariableParameters] = None,
) -> BinLiquidityInfo:
    """
    Per-bin amounts for a deposit

    Two modes:
    - both sides: amount_a and amount_b are deposited as given
    - auto fill: coin_amount of the fix_amount_a side, the other side sized to
      match the strategy shape

    When the pool's active bin and fee state are known, the composition fee
    is deducted from the amounts placed in the active bin.

    Raises:
        InvalidBinId: bin ids outside the supported range
        InvalidParams: inverted range or missing amounts
    """
    validate_bin_id(lower_bin_id)
    validate_bin_id(upper_bin_id)
    validate_bin_id(active_id)
    if lower_bin_id > upper_bin_id:
        raise InvalidParams.invalid("lower_bin_id", f"{lower_bin_id} is above upper_bin_id {upper_bin_id}")

    if fix_amount_a is not None:
        if coin_amount is None:
            raise InvalidParams.invalid("coin_amount", "required when fix_amount_a is given")
        bin_infos = auto_fill_coin_by_strategy_v2(
            active_id,
            bin_step,
            coin_amount,
            fix_amount_a,
            lower_bin_id,
            upper_bin_id,
            strategy_type,
            active_bin_of_pool,
        )
    else:
        if amount_a is None or amount_b is None:
            raise InvalidParams.invalid("amount_a/amount_b", "both amounts are required without fix_amount_a")
        bin_infos = to_amounts_both_side_by_strategy(
            active_id,
            bin_step,
            lower_bin_id,
            upper_bin_id,
            amount_a,
            amount_b,
            strategy_type,
            active_bin_of_pool,
        )

    if active_bin_of_pool is not None and variable_parameters is not None:
        used_bin = bin_infos.get_bin(active_id)
        if used_bin is not None:
            fee_a, fee_b = get_composition_fees(active_bin_of_pool, used_bin, variable_parameters)
            if fee_a or fee_b:
                new_amount_a = used_bin.amount_a - fee_a
                new_amount_b = used_bin.amount_b - fee_b
                q_price = get_q_price_from_id(active_id, bin_step)
                bin_infos.replace_bin(used_bin.with_amounts(
                    new_amount_a,
                    new_amount_b,
                    get_liquidity(new_amount_a, new_amount_b, q_price),
                ))
                logger.info(f"Deducted composition fees from active bin {active_id}: fee_a={fee_a}, fee_b={fee_b}")

    logger.debug(f"Add liquidity info: {bin_infos}")
    return bin_infos


# =============================================================================
# Withdrawal
# =============================================================================

def process_bins_by_rate(bins: List[BinAmount], rate: Decimal) -> BinLiquidityInfo:
    """
    Scale every bin by a removal rate

    Liquidity and amounts are rounded half up; a nonzero amount that scales
    below one unit is kept as one unit.
    """
    used_bins = []
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        for b in bins:
            used_liquidity = round_half_up(rate * b.liquidity)
            used_amount_a = rate * b.amount_a
            used_amount_b = rate * b.amount_b

            if 0 < used_amount_a < 1:
                used_amount_a = Decimal(1)
            if 0 < used_amount_b < 1:
                used_amount_b = Decimal(1)

            used_bins.append(b.with_amounts(
                round_half_up(used_amount_a),
                round_half_up(used_amount_b),
                used_liquidity,
            ))

    return BinLiquidityInfo(bins=used_bins)


def calculate_remove_liquidity_info(
    bins: List[BinAmount],
    active_id: int,
    coin_amount: int,
    fix_amount_a: Optional[bool] = None,
    is_only_a: Optional[bool] = None,
) -> BinLiquidityInfo:
    """
    Per-bin amounts for removing coin_amount of one token from a position

    Args:
        bins: Position bins with their current amounts and liquidity
        active_id: Current active bin of the pool
        coin_amount: Amount of the reference token to remove
        fix_amount_a: Both-sided removal over all bins, measured in token A
            (True) or token B (False)
        is_only_a: One-sided removal from the ask bins (True) or the bid
            bins (False) only

    Returns:
        Scaled bins; removing at least the available amount returns every
        used bin whole

    Raises:
        InvalidParams: neither or both of fix_amount_a / is_only_a given
        InsufficientLiquidity: nothing of the reference token is available
    """
    if (fix_amount_a is None) == (is_only_a is None):
        raise InvalidParams.invalid("fix_amount_a/is_only_a", "exactly one must be given")

    bins_b = [b for b in bins if b.bin_id < active_id]
    bins_a = [b for b in bins if b.bin_id > active_id]

    if fix_amount_a is not None:
        used_bins = list(bins)
        active_bin = next((b for b in bins if b.bin_id == active_id), None)
        if fix_amount_a:
            total_amount = sum(b.amount_a for b in bins_a) + (active_bin.amount_a if active_bin else 0)
        else:
            total_amount = sum(b.amount_b for b in bins_b) + (active_bin.amount_b if active_bin else 0)
        side = "A" if fix_amount_a else "B"
    else:
        used_bins = bins_a if is_only_a else bins_b
        total_amount = sum(b.amount_a if is_only_a else b.amount_b for b in used_bins)
        side = "A" if is_only_a else "B"

    if total_amount == 0:
        raise InsufficientLiquidity.no_liquidity(side, coin_amount)

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        if coin_amount >= total_amount:
            amount_rate = Decimal(1)
        else:
            amount_rate = Decimal(coin_amount) / Decimal(total_amount)

    logger.debug(f"Remove liquidity: {coin_amount} of {total_amount} token {side}, rate={amount_rate}")
    return process_bins_by_rate(used_bins, amount_rate)
