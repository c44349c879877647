"""
DLMM Fee Math

Base and variable fee rates of a pool, and the composition fee charged when a
deposit into the active bin changes the bin's token ratio.

All rates are integers in FEE_PRECISION (1e9) units.
"""

import logging
from decimal import Decimal, localcontext
from typing import Tuple

from ...types import BinAmount, FeeRate, VariableParameters
from .constants import (
    BASE_FEE_MULTIPLIER,
    BASIS_POINT,
    FEE_PRECISION,
    MAX_FEE_RATE,
    PRICE_PRECISION,
    VARIABLE_FEE_PRECISION,
)
from .math import calculate_out_by_share, get_liquidity, get_q_price_from_id, round_half_up

logger = logging.getLogger(__name__)


def get_base_fee(bin_step: int, base_factor: int) -> int:
    return bin_step * base_factor * BASE_FEE_MULTIPLIER


def get_variable_fee(variable_parameters: VariableParameters) -> int:
    """
    Volatility-driven fee rate

    (volatility_accumulator * bin_step)^2 * variable_fee_control, plus 1e11 - 1,
    divided by 1e11 and rounded half up. The padding is added before rounding,
    so an exact multiple of 1e11 still lands one unit higher. Zero when the pool
    has no variable fee control.
    """
    bin_step_config = variable_parameters.bin_step_config
    variable_fee_control = bin_step_config.variable_fee_control
    if variable_fee_control <= 0:
        return 0

    square_vfa_bin = (variable_parameters.volatility_accumulator * bin_step_config.bin_step) ** 2
    v_fee = square_vfa_bin * variable_fee_control
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        scaled = Decimal(v_fee + VARIABLE_FEE_PRECISION - 1) / Decimal(VARIABLE_FEE_PRECISION)
    return round_half_up(scaled)


def get_fee_rate(variable_parameters: VariableParameters) -> FeeRate:
    bin_step_config = variable_parameters.bin_step_config
    base_fee_rate = get_base_fee(bin_step_config.bin_step, bin_step_config.base_factor)
    var_fee_rate = get_variable_fee(variable_parameters)
    return FeeRate(
        base_fee_rate=base_fee_rate,
        var_fee_rate=var_fee_rate,
        total_fee_rate=min(base_fee_rate + var_fee_rate, MAX_FEE_RATE),
    )


def get_total_fee_rate(variable_parameters: VariableParameters) -> int:
    """Base plus variable fee, capped at MAX_FEE_RATE"""
    return get_fee_rate(variable_parameters).total_fee_rate


def calculate_composition_fee(amount: int, total_fee_rate: int) -> int:
    """
    Fee on the part of a deposit that swaps implicitly inside the active bin

    amount * rate * (1e9 + rate) / 1e18, rounded half up.
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        fee = Decimal(amount * total_fee_rate * (FEE_PRECISION + total_fee_rate)) / Decimal(FEE_PRECISION ** 2)
    return round_half_up(fee)


def calculate_protocol_fee(fee_amount: int, protocol_fee_rate: int) -> int:
    """Protocol share of a fee, rounded up (protocol_fee_rate in basis points)"""
    return -(-fee_amount * protocol_fee_rate // BASIS_POINT)


def get_protocol_fees(fee_a: int, fee_b: int, protocol_fee_rate: int) -> Tuple[int, int]:
    return (
        calculate_protocol_fee(fee_a, protocol_fee_rate),
        calculate_protocol_fee(fee_b, protocol_fee_rate),
    )


def get_composition_fees(
    active_bin: BinAmount,
    used_bin: BinAmount,
    variable_parameters: VariableParameters,
) -> Tuple[int, int]:
    """
    Composition fee owed by a deposit into the active bin

    The deposit mints share liquidity; redeeming that share from the merged bin
    tells how much of each token the depositor effectively swapped. The side
    that went in beyond its redeemable amount pays the fee.

    Args:
        active_bin: Current pool composition of the active bin
        used_bin: Amounts the deposit places into the active bin
        variable_parameters: Pool fee state

    Returns:
        (fee_a, fee_b)
    """
    if active_bin.liquidity == 0:
        return 0, 0

    bin_step = variable_parameters.bin_step_config.bin_step
    q_price = get_q_price_from_id(active_bin.bin_id, bin_step)
    bin_liquidity = get_liquidity(active_bin.amount_a, active_bin.amount_b, q_price)
    if bin_liquidity == 0:
        return 0, 0

    delta_liquidity = get_liquidity(used_bin.amount_a, used_bin.amount_b, q_price)

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        share = round_half_up(
            Decimal(active_bin.liquidity) * Decimal(delta_liquidity) / Decimal(bin_liquidity)
        )

    merged_bin = BinAmount(
        bin_id=active_bin.bin_id,
        amount_a=active_bin.amount_a + used_bin.amount_a,
        amount_b=active_bin.amount_b + used_bin.amount_b,
        price_per_lamport=active_bin.price_per_lamport,
        liquidity=active_bin.liquidity + share,
    )
    out_amount_a, out_amount_b = calculate_out_by_share(merged_bin, share)

    total_fee_rate = get_total_fee_rate(variable_parameters)
    fee_a = 0
    fee_b = 0
    if out_amount_a > used_bin.amount_a and used_bin.amount_b > out_amount_b:
        fee_b = calculate_composition_fee(used_bin.amount_b - out_amount_b, total_fee_rate)
    elif out_amount_b > used_bin.amount_b and used_bin.amount_a > out_amount_a:
        fee_a = calculate_composition_fee(used_bin.amount_a - out_amount_a, total_fee_rate)

    logger.debug(
        f"Composition fees for bin {active_bin.bin_id}: fee_a={fee_a}, fee_b={fee_b} "
        f"(share={share}, total_fee_rate={total_fee_rate})"
    )
    return fee_a, fee_b
