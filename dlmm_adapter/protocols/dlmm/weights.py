"""
DLMM Weight Strategies

Turns a bin range, the active bin and a strategy shape into per-bin weights,
and distributes token amounts over BinWeight distributions.

Two representations live here:
- to_weight(): the integer engine used for the final allocation. Bid-side
  weights are accumulated in Q64 (weight << 64), ask-side weights in
  weight << 128 / q_price so that both sides are directly comparable.
- BinWeight distributions + to_amount_*(): the decimal engine used for the
  first pass of a single-coin deposit, where only the ratio matters.
"""

import logging
from decimal import Decimal, localcontext
from typing import List, NamedTuple, Optional, Tuple

from ...errors import InvalidParams, InvalidStrategyParams
from ...types import BinAmount, BinLiquidityInfo, BinWeight, StrategyType, WeightsInfo, WeightsOptions
from .constants import DEFAULT_MAX_WEIGHT, DEFAULT_MIN_WEIGHT, PRICE_PRECISION, SCALE_OFFSET
from .math import (
    get_liquidity,
    get_price_per_lamport_from_bin_id,
    get_q_price_from_id,
    safe_div,
    safe_mul_amount,
)

logger = logging.getLogger(__name__)

Q64 = 1 << SCALE_OFFSET
Q128 = 1 << (SCALE_OFFSET * 2)


class TotalWeights(NamedTuple):
    """Decimal weight totals of a BinWeight distribution"""
    total_weight_a: Decimal
    total_weight_b: Decimal
    active_weight_a: Decimal
    active_weight_b: Decimal


def get_base_weight(strategy_type: StrategyType) -> int:
    """Weight of the active bin (and of every bin for Spot)"""
    if strategy_type == StrategyType.SPOT:
        return 1
    if strategy_type == StrategyType.CURVE:
        return DEFAULT_MAX_WEIGHT
    if strategy_type == StrategyType.BID_ASK:
        return DEFAULT_MIN_WEIGHT
    raise InvalidStrategyParams.unknown_strategy(strategy_type)


# =============================================================================
# Integer weight engine
# =============================================================================

def calculate_active_weights(
    amount_a_in_active_bin: int,
    amount_b_in_active_bin: int,
    active_q_price: int,
    base_weight: int,
) -> Tuple[int, int]:
    """
    Split the active bin's weight between the two tokens

    The split follows the composition already resident in the bin, so that
    the deposit lands at the bin's real local price. An empty bin is split
    half and half.

    Returns:
        (active_weight_a, active_weight_b) in the same scales as to_weight()
    """
    p0 = active_q_price
    amount_a = amount_a_in_active_bin
    amount_b = amount_b_in_active_bin

    if amount_a == 0 and amount_b == 0:
        active_weight_a = base_weight * Q128 // (p0 * 2)
        active_weight_b = base_weight * Q64 // 2
        return active_weight_a, active_weight_b

    # base * 2^128 / (p0 + amount_b * 2^64 / amount_a), kept exact
    if amount_a == 0:
        active_weight_a = 0
    else:
        active_weight_a = base_weight * Q128 * amount_a // (p0 * amount_a + amount_b * Q64)

    if amount_b == 0:
        active_weight_b = 0
    else:
        m = Q64 + p0 * amount_a // amount_b
        active_weight_b = base_weight * Q128 // m

    return active_weight_a, active_weight_b


def to_weight(options: WeightsOptions) -> WeightsInfo:
    """
    Compute per-bin weights for a range

    The active bin's share comes from the pool's active bin composition
    (an unknown composition is treated as an empty bin). When the caller
    supplies zero of one token and the active bin is inside or on the edge of
    the range, the whole active weight goes to the other token.

    Args:
        options: Strategy, range, active bin and target totals

    Returns:
        WeightsInfo with weights indexed by bin_id - lower_bin_id
    """
    strategy_type = options.strategy_type
    active_id = options.active_id
    lower_bin_id = options.lower_bin_id
    upper_bin_id = options.upper_bin_id
    bin_step = options.bin_step
    total_amount_a = options.total_amount_a
    total_amount_b = options.total_amount_b

    if lower_bin_id > upper_bin_id:
        raise InvalidParams.invalid("lower_bin_id", f"{lower_bin_id} is above upper_bin_id {upper_bin_id}")

    single_side = active_id < lower_bin_id or active_id > upper_bin_id
    active_q_price = get_q_price_from_id(active_id, bin_step)
    base_weight = get_base_weight(strategy_type)

    active_weight_a = 0
    active_weight_b = 0

    if not single_side:
        active_bin = options.active_bin_of_pool
        resident_a = active_bin.amount_a if active_bin else 0
        resident_b = active_bin.amount_b if active_bin else 0
        active_weight_a, active_weight_b = calculate_active_weights(
            resident_a, resident_b, active_q_price, base_weight
        )

    if active_id == lower_bin_id and total_amount_b == 0:
        active_weight_a = base_weight * Q128 // active_q_price
        active_weight_b = 0
    if active_id == upper_bin_id and total_amount_a == 0:
        active_weight_b = base_weight * Q64
        active_weight_a = 0

    if lower_bin_id < active_id < upper_bin_id:
        if total_amount_a == 0:
            active_weight_b = base_weight * Q64
            active_weight_a = 0
        if total_amount_b == 0:
            active_weight_a = base_weight * Q128 // active_q_price
            active_weight_b = 0

    total_weight_a = 0 if single_side else active_weight_a
    total_weight_b = 0 if single_side else active_weight_b

    diff_weight = DEFAULT_MAX_WEIGHT - DEFAULT_MIN_WEIGHT

    left_end_bin_id = min(active_id, upper_bin_id)
    right_start_bin_id = max(active_id, lower_bin_id)

    if active_id > lower_bin_id and left_end_bin_id != lower_bin_id:
        diff_min_weight = diff_weight // (left_end_bin_id - lower_bin_id)
    else:
        diff_min_weight = 0

    if upper_bin_id > active_id and right_start_bin_id != upper_bin_id:
        diff_max_weight = diff_weight // (upper_bin_id - right_start_bin_id)
    else:
        diff_max_weight = 0

    weights: List[int] = []
    weight_per_prices: List[int] = []

    for bin_id in range(lower_bin_id, upper_bin_id + 1):
        if bin_id < active_id:
            delta_bin = left_end_bin_id - bin_id
            weight = _ramp_weight(strategy_type, base_weight, diff_min_weight, delta_bin)
        elif bin_id > active_id:
            delta_bin = bin_id - right_start_bin_id
            weight = _ramp_weight(strategy_type, base_weight, diff_max_weight, delta_bin)
        else:
            weight = base_weight
        weights.append(weight)

        if bin_id < active_id:
            total_weight_b += weight << SCALE_OFFSET
            weight_per_prices.append(0)
        elif bin_id > active_id:
            weight_per_price = weight * Q128 // get_q_price_from_id(bin_id, bin_step)
            weight_per_prices.append(weight_per_price)
            total_weight_a += weight_per_price
        else:
            weight_per_prices.append(0)

    return WeightsInfo(
        strategy_type=strategy_type,
        active_id=active_id,
        bin_step=bin_step,
        lower_bin_id=lower_bin_id,
        upper_bin_id=upper_bin_id,
        total_amount_a=total_amount_a,
        total_amount_b=total_amount_b,
        active_bin_of_pool=options.active_bin_of_pool,
        total_weight_a=total_weight_a,
        total_weight_b=total_weight_b,
        active_weight_a=active_weight_a,
        active_weight_b=active_weight_b,
        weights=weights,
        weight_per_prices=weight_per_prices,
    )


def _ramp_weight(strategy_type: StrategyType, base_weight: int, step: int, delta_bin: int) -> int:
    if strategy_type == StrategyType.SPOT:
        return 1
    if strategy_type == StrategyType.BID_ASK:
        return base_weight + step * delta_bin
    if strategy_type == StrategyType.CURVE:
        return base_weight - step * delta_bin
    raise InvalidStrategyParams.unknown_strategy(strategy_type)


# =============================================================================
# BinWeight distributions
# =============================================================================

def to_weight_spot_balanced(min_bin_id: int, max_bin_id: int) -> List[BinWeight]:
    return [BinWeight(bin_id=i, weight=1) for i in range(min_bin_id, max_bin_id + 1)]


def to_weight_descending_order(min_bin_id: int, max_bin_id: int) -> List[BinWeight]:
    return [BinWeight(bin_id=i, weight=max_bin_id - i + 1) for i in range(min_bin_id, max_bin_id + 1)]


def to_weight_ascending_order(min_bin_id: int, max_bin_id: int) -> List[BinWeight]:
    return [BinWeight(bin_id=i, weight=i - min_bin_id + 1) for i in range(min_bin_id, max_bin_id + 1)]


def to_weight_curve(min_bin_id: int, max_bin_id: int, active_id: int) -> List[BinWeight]:
    """Peak of DEFAULT_MAX_WEIGHT at the active bin, linear fall to the edges"""
    if active_id < min_bin_id:
        return to_weight_descending_order(min_bin_id, max_bin_id)
    if active_id > max_bin_id:
        return to_weight_ascending_order(min_bin_id, max_bin_id)

    diff_weight = DEFAULT_MAX_WEIGHT - DEFAULT_MIN_WEIGHT
    diff_min_weight = diff_weight // (active_id - min_bin_id) if active_id > min_bin_id else 0
    diff_max_weight = diff_weight // (max_bin_id - active_id) if max_bin_id > active_id else 0

    distributions = []
    for i in range(min_bin_id, max_bin_id + 1):
        if i < active_id:
            weight = DEFAULT_MAX_WEIGHT - (active_id - i) * diff_min_weight
        elif i > active_id:
            weight = DEFAULT_MAX_WEIGHT - (i - active_id) * diff_max_weight
        else:
            weight = DEFAULT_MAX_WEIGHT
        distributions.append(BinWeight(bin_id=i, weight=weight))
    return distributions


def to_weight_bid_ask(min_bin_id: int, max_bin_id: int, active_id: int) -> List[BinWeight]:
    """Valley of DEFAULT_MIN_WEIGHT at the active bin, linear rise to the edges"""
    if active_id > max_bin_id:
        return to_weight_descending_order(min_bin_id, max_bin_id)
    if active_id < min_bin_id:
        return to_weight_ascending_order(min_bin_id, max_bin_id)

    diff_weight = DEFAULT_MAX_WEIGHT - DEFAULT_MIN_WEIGHT
    diff_min_weight = diff_weight // (active_id - min_bin_id) if active_id > min_bin_id else 0
    diff_max_weight = diff_weight // (max_bin_id - active_id) if max_bin_id > active_id else 0

    distributions = []
    for i in range(min_bin_id, max_bin_id + 1):
        if i < active_id:
            weight = DEFAULT_MIN_WEIGHT + (active_id - i) * diff_min_weight
        elif i > active_id:
            weight = DEFAULT_MIN_WEIGHT + (i - active_id) * diff_max_weight
        else:
            weight = DEFAULT_MIN_WEIGHT
        distributions.append(BinWeight(bin_id=i, weight=weight))
    return distributions


def to_weight_by_strategy(
    strategy_type: StrategyType,
    min_bin_id: int,
    max_bin_id: int,
    active_id: int,
) -> List[BinWeight]:
    if strategy_type == StrategyType.SPOT:
        return to_weight_spot_balanced(min_bin_id, max_bin_id)
    if strategy_type == StrategyType.CURVE:
        return to_weight_curve(min_bin_id, max_bin_id, active_id)
    if strategy_type == StrategyType.BID_ASK:
        return to_weight_bid_ask(min_bin_id, max_bin_id, active_id)
    raise InvalidStrategyParams.unknown_strategy(strategy_type)


def calculate_total_weights(
    bin_step: int,
    distributions: List[BinWeight],
    active_id: int,
    active_bin: Optional[BinWeight] = None,
    amount_a_in_active_bin: int = 0,
    amount_b_in_active_bin: int = 0,
    is_only_amount: Optional[str] = None,
) -> TotalWeights:
    """
    Sum a distribution into token A and token B weight totals

    Ask-side bins contribute weight / price_per_lamport, bid-side bins their
    raw weight. With is_only_amount set ('a' or 'b') every bin counts towards
    that side and the active bin is not split.
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        p0 = get_price_per_lamport_from_bin_id(active_id, bin_step)
        active_weight_a = Decimal(0)
        active_weight_b = Decimal(0)

        if active_bin is not None and is_only_amount is None:
            weight = Decimal(active_bin.weight)
            if amount_a_in_active_bin == 0 and amount_b_in_active_bin == 0:
                active_weight_a = weight / (p0 * 2)
                active_weight_b = weight / 2
            else:
                resident_a = Decimal(amount_a_in_active_bin)
                resident_b = Decimal(amount_b_in_active_bin)
                if amount_a_in_active_bin != 0:
                    active_weight_a = weight / (p0 + resident_b / resident_a)
                if amount_b_in_active_bin != 0:
                    active_weight_b = weight / (1 + p0 * resident_a / resident_b)

        total_weight_a = active_weight_a
        total_weight_b = active_weight_b
        for element in distributions:
            if element.bin_id < active_id or is_only_amount == "b":
                total_weight_b += Decimal(element.weight)
            if element.bin_id > active_id or is_only_amount == "a":
                price_per_lamport = get_price_per_lamport_from_bin_id(element.bin_id, bin_step)
                total_weight_a += Decimal(element.weight) / price_per_lamport

    return TotalWeights(total_weight_a, total_weight_b, active_weight_a, active_weight_b)


# =============================================================================
# Amount distribution over BinWeight lists
# =============================================================================

def _bin_amount(bin_id: int, bin_step: int, amount_a: int, amount_b: int) -> BinAmount:
    q_price = get_q_price_from_id(bin_id, bin_step)
    return BinAmount(
        bin_id=bin_id,
        amount_a=amount_a,
        amount_b=amount_b,
        price_per_lamport=get_price_per_lamport_from_bin_id(bin_id, bin_step),
        liquidity=get_liquidity(amount_a, amount_b, q_price),
    )


def to_amount_bid_side(
    active_id: int,
    amount_b: int,
    bin_step: int,
    distributions: List[BinWeight],
    contain_active_bin: bool = False,
) -> BinLiquidityInfo:
    """
    Distribute token B over the bins below the active bin

    Raises:
        InvalidStrategyParams: no positive weight on the bid side
    """
    def is_bid(bin_id: int) -> bool:
        return bin_id < active_id or (contain_active_bin and bin_id == active_id)

    total_weight = sum(b.weight for b in distributions if is_bid(b.bin_id))
    if total_weight <= 0:
        raise InvalidStrategyParams.zero_total_weight("bid")

    bins = []
    for b in distributions:
        if is_bid(b.bin_id):
            bins.append(_bin_amount(b.bin_id, bin_step, 0, safe_div(amount_b * b.weight, total_weight)))
        else:
            bins.append(_bin_amount(b.bin_id, bin_step, 0, 0))
    return BinLiquidityInfo(bins=bins)


def to_amount_ask_side(
    active_id: int,
    bin_step: int,
    amount_a: int,
    distributions: List[BinWeight],
    contain_active_bin: bool = False,
) -> BinLiquidityInfo:
    """
    Distribute token A over the bins above the active bin

    Raises:
        InvalidStrategyParams: no positive weight on the ask side
    """
    def is_ask(bin_id: int) -> bool:
        return bin_id > active_id or (contain_active_bin and bin_id == active_id)

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        weight_per_prices = {
            b.bin_id: Decimal(b.weight) / get_price_per_lamport_from_bin_id(b.bin_id, bin_step)
            for b in distributions
            if is_ask(b.bin_id)
        }
        total_weight = sum(weight_per_prices.values(), Decimal(0))

        if total_weight <= 0:
            raise InvalidStrategyParams.zero_total_weight("ask")

        bins = []
        for b in distributions:
            if is_ask(b.bin_id):
                rate = weight_per_prices[b.bin_id] / total_weight
                bins.append(_bin_amount(b.bin_id, bin_step, safe_mul_amount(amount_a, rate), 0))
            else:
                bins.append(_bin_amount(b.bin_id, bin_step, 0, 0))
    return BinLiquidityInfo(bins=bins)


def to_amount_both_side(
    active_id: int,
    bin_step: int,
    amount_a: int,
    amount_b: int,
    amount_a_in_active_bin: int,
    amount_b_in_active_bin: int,
    distributions: List[BinWeight],
) -> BinLiquidityInfo:
    """
    Distribute both tokens over a distribution around the active bin

    Ranges entirely on one side of the active bin, and deposits of a single
    token that do not sit on the matching edge, are routed to
    to_amount_bid_side() / to_amount_ask_side().
    """
    is_only_amount_a = amount_a != 0 and amount_b == 0
    is_only_amount_b = amount_a == 0 and amount_b != 0
    first_bin_id = distributions[0].bin_id
    last_bin_id = distributions[-1].bin_id

    if active_id > last_bin_id:
        return to_amount_bid_side(active_id, amount_b, bin_step, distributions)

    if is_only_amount_b and active_id != last_bin_id:
        return to_amount_bid_side(active_id, amount_b, bin_step, distributions, contain_active_bin=True)

    if active_id < first_bin_id:
        return to_amount_ask_side(active_id, bin_step, amount_a, distributions)

    if is_only_amount_a and active_id != first_bin_id:
        return to_amount_ask_side(active_id, bin_step, amount_a, distributions, contain_active_bin=True)

    active_bin = next(b for b in distributions if b.bin_id == active_id)
    is_only_amount = "a" if is_only_amount_a else "b" if is_only_amount_b else None
    totals = calculate_total_weights(
        bin_step,
        distributions,
        active_id,
        active_bin,
        amount_a_in_active_bin,
        amount_b_in_active_bin,
        is_only_amount,
    )

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        k_a = Decimal(amount_a) / totals.total_weight_a if totals.total_weight_a else Decimal(0)
        k_b = Decimal(amount_b) / totals.total_weight_b if totals.total_weight_b else Decimal(0)

        bins = []
        for b in distributions:
            if b.bin_id < active_id or (b.bin_id == active_id and is_only_amount_b):
                bins.append(_bin_amount(b.bin_id, bin_step, 0, safe_mul_amount(k_b, b.weight)))
            elif b.bin_id > active_id or (b.bin_id == active_id and is_only_amount_a):
                weight_per_price = Decimal(b.weight) / get_price_per_lamport_from_bin_id(b.bin_id, bin_step)
                bins.append(_bin_amount(b.bin_id, bin_step, safe_mul_amount(k_a, weight_per_price), 0))
            else:
                bins.append(_bin_amount(
                    b.bin_id,
                    bin_step,
                    safe_mul_amount(k_a, totals.active_weight_a),
                    safe_mul_amount(k_b, totals.active_weight_b),
                ))

    return BinLiquidityInfo(bins=bins)


def auto_fill_coin_by_weight(
    active_id: int,
    bin_step: int,
    amount: int,
    fix_amount_a: bool,
    amount_a_in_active_bin: int,
    amount_b_in_active_bin: int,
    distributions: List[BinWeight],
) -> BinLiquidityInfo:
    """
    Fill the other token to match a fixed amount of one token

    The fixed amount sets k = amount / total_weight(fixed side); the other
    side receives k * total_weight(other side), then both are distributed
    with to_amount_both_side().

    Raises:
        InvalidParams: the range can only hold the token that is not fixed
    """
    if active_id > distributions[-1].bin_id:
        if fix_amount_a:
            raise InvalidParams.invalid("fix_amount_a", "a range below the active bin only holds token B")
        return to_amount_bid_side(active_id, amount, bin_step, distributions)

    if active_id < distributions[0].bin_id:
        if not fix_amount_a:
            raise InvalidParams.invalid("fix_amount_a", "a range above the active bin only holds token A")
        return to_amount_ask_side(active_id, bin_step, amount, distributions)

    active_bins = [b for b in distributions if b.bin_id == active_id]
    active_bin = active_bins[0] if len(active_bins) == 1 else None

    totals = calculate_total_weights(
        bin_step,
        distributions,
        active_id,
        active_bin,
        amount_a_in_active_bin,
        amount_b_in_active_bin,
    )

    fixed_total = totals.total_weight_a if fix_amount_a else totals.total_weight_b
    other_total = totals.total_weight_b if fix_amount_a else totals.total_weight_a

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        k = Decimal(amount) / fixed_total if fixed_total else Decimal(0)
    other_amount = safe_mul_amount(k, other_total)

    logger.debug(
        f"Auto fill: fixed={'A' if fix_amount_a else 'B'} amount={amount}, other_amount={other_amount}"
    )

    return to_amount_both_side(
        active_id,
        bin_step,
        amount if fix_amount_a else other_amount,
        other_amount if fix_amount_a else amount,
        amount_a_in_active_bin,
        amount_b_in_active_bin,
        distributions,
    )
