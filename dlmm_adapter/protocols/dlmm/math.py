"""
DLMM Math Utilities

Provides Q64.64 fixed point exponentiation, bin/price conversion, bin
storage keys and constant-sum liquidity calculations.

Integer quantities (amounts, liquidity, Q64.64 prices) are Python ints, which
are arbitrary precision, so 256-bit intermediates never overflow. Display
prices are Decimals computed under a PRICE_PRECISION-digit context.
"""

import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, localcontext
from typing import Tuple, Union

from ...errors import AmountTooSmall, InvalidBinId, InvalidDeltaLiquidity, LiquiditySupplyIsZero
from ...types import BinAmount
from .constants import (
    BASIS_POINT_MAX,
    BIN_BOUND,
    BIN_GROUP_MASK,
    BIN_GROUP_SHIFT,
    MAX_EXPONENTIAL,
    MAX_U128,
    MAX_U64,
    ONE,
    PRICE_PRECISION,
    SCALE_OFFSET,
)

logger = logging.getLogger(__name__)

# ln() results are snapped to this quantum before floor/ceil so that an exact
# bin price maps back to its own bin id
_BIN_ID_QUANTUM = Decimal("1e-20")

Number = Union[int, str, Decimal]


# =============================================================================
# Rounding helpers
# =============================================================================

def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def floor_decimal(value: Number) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def ceil_decimal(value: Number) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_CEILING))


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Exact integer division rounded half up (non-negative operands)"""
    return (2 * numerator + denominator) // (2 * denominator)


def safe_amount(value: Number) -> int:
    """
    Floor a computed per-bin amount

    Raises:
        AmountTooSmall: value lies strictly between 0 and 1
    """
    value = Decimal(value)
    if 0 < value < 1:
        raise AmountTooSmall.below_one(value)
    return floor_decimal(value)


def safe_mul_amount(amount: Number, rate: Number) -> int:
    """safe_amount(amount * rate)"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        product = Decimal(amount) * Decimal(rate)
    return safe_amount(product)


def safe_div(numerator: int, denominator: int) -> int:
    """
    Integer form of safe_amount(numerator / denominator)

    Raises:
        AmountTooSmall: quotient lies strictly between 0 and 1
    """
    if 0 < numerator < denominator:
        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            raise AmountTooSmall.below_one(Decimal(numerator) / Decimal(denominator))
    return numerator // denominator


# =============================================================================
# Q64.64 fixed point
# =============================================================================

def pow_q64(base: int, exp: int) -> int:
    """
    Raise a Q64.64 number to an integer power

    Exponentiation by squaring over the 19 low bits of |exp|, every product
    rescaled with >> 64. Bases >= 1.0 are inverted first so the squares stay
    below 2^128, and the result is inverted back at the end.

    Args:
        base: Q64.64 base
        exp: Signed integer exponent

    Returns:
        Q64.64 result, or 0 when the result underflows or |exp| exceeds MAX_EXPONENTIAL
    """
    invert = exp < 0

    if exp == 0:
        return ONE

    exp = abs(exp)

    if exp > MAX_EXPONENTIAL:
        return 0

    squared_base = base
    result = ONE

    if squared_base >= result:
        squared_base = MAX_U128 // squared_base
        invert = not invert

    bit = 0x1
    while bit < MAX_EXPONENTIAL:
        if exp & bit:
            result = (result * squared_base) >> SCALE_OFFSET
        squared_base = (squared_base * squared_base) >> SCALE_OFFSET
        bit <<= 1

    if result == 0:
        return 0

    if invert:
        result = MAX_U128 // result

    return result


def from_x64(q_value: int) -> Decimal:
    """Q64.64 to Decimal"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return Decimal(q_value) / Decimal(ONE)


def to_x64(value: Number) -> int:
    """Decimal to Q64.64 (floored)"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION + 20
        return floor_decimal(Decimal(value) * Decimal(ONE))


# =============================================================================
# Bin price
# =============================================================================

def get_q_price_from_id(bin_id: int, bin_step: int) -> int:
    """
    Q64.64 price of a bin: (1 + bin_step/10000)^bin_id

    Args:
        bin_id: Bin ID
        bin_step: Bin step in basis points

    Returns:
        Price of token A in token B base units, Q64.64
    """
    bps = (bin_step << SCALE_OFFSET) // BASIS_POINT_MAX
    return pow_q64(ONE + bps, bin_id)


def get_price_per_lamport_from_q_price(q_price: int) -> Decimal:
    return from_x64(q_price)


def get_price_per_lamport_from_bin_id(bin_id: int, bin_step: int) -> Decimal:
    """Price of one base unit of A in base units of B"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        base = Decimal(1) + Decimal(bin_step) / Decimal(BASIS_POINT_MAX)
        return base ** bin_id


def get_bin_id_from_lamport_price(price_per_lamport: Number, bin_step: int, round_towards_min: bool = True) -> int:
    """
    Bin containing a base-unit price

    Args:
        price_per_lamport: Price of A in B base units
        bin_step: Bin step in basis points
        round_towards_min: Floor the fractional bin id if True, else ceil

    Returns:
        Bin ID
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        base = Decimal(1) + Decimal(bin_step) / Decimal(BASIS_POINT_MAX)
        fractional_id = Decimal(price_per_lamport).ln() / base.ln()
        fractional_id = fractional_id.quantize(_BIN_ID_QUANTUM)
    if round_towards_min:
        return floor_decimal(fractional_id)
    return ceil_decimal(fractional_id)


def get_price_per_lamport(decimal_a: int, decimal_b: int, price: Number) -> Decimal:
    """Display price (A in B, whole tokens) to base-unit price"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return Decimal(price) * Decimal(10) ** (decimal_b - decimal_a)


def get_price_from_lamport(decimal_a: int, decimal_b: int, price_per_lamport: Number) -> Decimal:
    """Base-unit price to display price (A in B, whole tokens)"""
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return Decimal(price_per_lamport) / Decimal(10) ** (decimal_b - decimal_a)


def get_price_from_bin_id(bin_id: int, bin_step: int, decimal_a: int, decimal_b: int) -> Decimal:
    price_per_lamport = get_price_per_lamport_from_bin_id(bin_id, bin_step)
    return get_price_from_lamport(decimal_a, decimal_b, price_per_lamport)


def get_bin_id_from_price(
    price: Number,
    bin_step: int,
    round_towards_min: bool,
    decimal_a: int,
    decimal_b: int,
) -> int:
    price_per_lamport = get_price_per_lamport(decimal_a, decimal_b, price)
    return get_bin_id_from_lamport_price(price_per_lamport, bin_step, round_towards_min)


def get_reverse_price(price: Number) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return Decimal(1) / Decimal(price)


def price_range_to_bin_range(
    lower_price: Number,
    upper_price: Number,
    bin_step: int,
    decimal_a: int,
    decimal_b: int,
) -> Tuple[int, int]:
    """
    Smallest bin range covering a display price interval

    Returns:
        (lower_bin_id, upper_bin_id)
    """
    lower_bin_id = get_bin_id_from_price(lower_price, bin_step, True, decimal_a, decimal_b)
    upper_bin_id = get_bin_id_from_price(upper_price, bin_step, False, decimal_a, decimal_b)
    validate_bin_id(lower_bin_id)
    validate_bin_id(upper_bin_id)
    return lower_bin_id, upper_bin_id


# =============================================================================
# Bin identity
# =============================================================================

def validate_bin_id(bin_id: int) -> None:
    if bin_id < -BIN_BOUND or bin_id > BIN_BOUND:
        raise InvalidBinId.out_of_bounds(bin_id, BIN_BOUND)


def bin_score(bin_id: int) -> int:
    """Non-negative storage key of a bin: bin_id + BIN_BOUND"""
    score = bin_id + BIN_BOUND
    if score < 0 or score > BIN_BOUND * 2:
        raise InvalidBinId.out_of_bounds(bin_id, BIN_BOUND)
    return score


def score_to_bin_id(score: int) -> int:
    bin_id = score - BIN_BOUND
    if bin_id < -BIN_BOUND or bin_id > BIN_BOUND:
        raise InvalidBinId(f"Invalid bin score: {score}", bin_id=bin_id)
    return bin_id


def resolve_bin_position(score: int) -> Tuple[int, int]:
    """
    Locate a bin inside grouped storage

    Returns:
        (group_index, offset_in_group)
    """
    return score >> BIN_GROUP_SHIFT, score & BIN_GROUP_MASK


def find_min_max_bin_id(bin_step: int) -> Tuple[int, int]:
    """
    Widest bin range whose Q64.64 price is representable for a bin step

    Starts at +/- floor(log(2^64 - 1) / log(1 + bin_step/10000)) and walks
    inward until the price is strictly inside (1, 2^128 - 1).

    Returns:
        (min_bin_id, max_bin_id)
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        base = Decimal(1) + Decimal(bin_step) / Decimal(BASIS_POINT_MAX)
        n = floor_decimal(Decimal(MAX_U64).ln() / base.ln())

    min_bin_id = -n
    while True:
        q_price = get_q_price_from_id(min_bin_id, bin_step)
        if q_price > 1:
            break
        min_bin_id += 1

    max_bin_id = n
    while True:
        q_price = get_q_price_from_id(max_bin_id, bin_step)
        if 0 < q_price < MAX_U128:
            break
        max_bin_id -= 1

    return min_bin_id, max_bin_id


def get_bin_shift(active_id: int, bin_step: int, max_price_slippage: Number) -> int:
    """
    Number of bins the active id may drift for a relative price slippage

    Args:
        active_id: Current active bin
        bin_step: Bin step in basis points
        max_price_slippage: Relative slippage, e.g. 0.01 for 1%

    Returns:
        Non-negative bin count
    """
    price = get_price_per_lamport_from_bin_id(active_id, bin_step)
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        price_limit = price * (Decimal(1) + Decimal(str(max_price_slippage)))
    slippage_active_id = get_bin_id_from_lamport_price(price_limit, bin_step, True)
    bin_shift = abs(slippage_active_id - active_id)
    logger.debug(f"Bin shift for active_id={active_id}, slippage={max_price_slippage}: {bin_shift}")
    return bin_shift


# =============================================================================
# Constant-sum liquidity: L = q_price * amount_a + amount_b * 2^64
# =============================================================================

def get_liquidity(amount_a: int, amount_b: int, q_price: int) -> int:
    return q_price * amount_a + (amount_b << SCALE_OFFSET)


def get_amount_a_from_liquidity(liquidity: int, q_price: int) -> int:
    """Token A equivalent of liquidity held entirely in A (rounded half up)"""
    return div_round_half_up(liquidity, q_price)


def get_amount_b_from_liquidity(liquidity: int) -> int:
    """Token B equivalent of liquidity held entirely in B (rounded half up)"""
    return div_round_half_up(liquidity, ONE)


def get_amounts_from_liquidity(
    amount_a: int,
    amount_b: int,
    delta_liquidity: int,
    liquidity_supply: int,
) -> Tuple[int, int]:
    """
    Token amounts a liquidity delta redeems from a bin, floored

    Raises:
        LiquiditySupplyIsZero: bin has no liquidity supply
        InvalidDeltaLiquidity: delta exceeds supply
    """
    if liquidity_supply == 0:
        raise LiquiditySupplyIsZero()

    if delta_liquidity > liquidity_supply:
        raise InvalidDeltaLiquidity.exceeds_supply(delta_liquidity, liquidity_supply)

    if delta_liquidity == 0:
        return 0, 0

    out_amount_a = amount_a * delta_liquidity // liquidity_supply if amount_a else 0
    out_amount_b = amount_b * delta_liquidity // liquidity_supply if amount_b else 0
    return out_amount_a, out_amount_b


def calculate_out_by_share(bin_amount: BinAmount, remove_liquidity: int) -> Tuple[int, int]:
    """
    Token amounts redeemed by removing liquidity from a bin

    Saturates at the whole bin; a bin without liquidity yields nothing.
    """
    liquidity = bin_amount.liquidity
    if liquidity == 0:
        return 0, 0

    if remove_liquidity >= liquidity:
        return bin_amount.amount_a, bin_amount.amount_b

    amount_a_out = remove_liquidity * bin_amount.amount_a // liquidity
    amount_b_out = remove_liquidity * bin_amount.amount_b // liquidity
    return amount_a_out, amount_b_out
