"""
Test DLMM Fee Math

Tests for base/variable fee rates and composition fees.
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dlmm_adapter.modules.liquidity import calculate_add_liquidity_info
from dlmm_adapter.protocols.dlmm.constants import MAX_FEE_RATE, ONE
from dlmm_adapter.protocols.dlmm.fees import (
    calculate_composition_fee,
    calculate_protocol_fee,
    get_base_fee,
    get_composition_fees,
    get_fee_rate,
    get_protocol_fees,
    get_total_fee_rate,
    get_variable_fee,
)
from dlmm_adapter.protocols.dlmm.math import get_liquidity, get_q_price_from_id
from dlmm_adapter.types import BinAmount, BinStepConfig, StrategyType, VariableParameters


def _params(base_factor=10000, variable_fee_control=0, volatility_accumulator=0, bin_step=10):
    return VariableParameters(
        bin_step_config=BinStepConfig(
            bin_step=bin_step,
            base_factor=base_factor,
            variable_fee_control=variable_fee_control,
        ),
        volatility_accumulator=volatility_accumulator,
    )


def _active_bin(amount_a, amount_b):
    return BinAmount(
        bin_id=0,
        amount_a=amount_a,
        amount_b=amount_b,
        price_per_lamport=Decimal(1),
        liquidity=get_liquidity(amount_a, amount_b, ONE),
    )


def test_fee_rates():
    """Test base, variable and total fee rates"""
    print("Testing fee rates...")

    assert get_base_fee(10, 10000) == 1_000_000

    # No variable fee control, no variable fee
    assert get_variable_fee(_params(volatility_accumulator=1000)) == 0

    # (1000 * 10)^2 * 40000 = 4e12; padded by 1e11 - 1 gives 40.99..., rounds half up to 41
    assert get_variable_fee(_params(variable_fee_control=40000, volatility_accumulator=1000)) == 41
    assert get_variable_fee(_params(variable_fee_control=40001, volatility_accumulator=1000)) == 41

    # (40000 * 10)^2 * 1 = 1.6e11; padded gives 2.59..., 3 rather than the exact ceiling 2
    assert get_variable_fee(_params(variable_fee_control=1, volatility_accumulator=40000)) == 3

    fee_rate = get_fee_rate(_params(variable_fee_control=40000, volatility_accumulator=1000))
    assert fee_rate.base_fee_rate == 1_000_000
    assert fee_rate.var_fee_rate == 41
    assert fee_rate.total_fee_rate == 1_000_041

    # Capped at MAX_FEE_RATE
    assert get_total_fee_rate(_params(base_factor=10_000_000)) == MAX_FEE_RATE

    print("  fee rates: PASSED")


def test_composition_fee():
    """Test the composition fee formula"""
    print("Testing calculate_composition_fee...")

    # 1e6 * 1e6 * (1e9 + 1e6) / 1e18 = 1001
    assert calculate_composition_fee(1_000_000, 1_000_000) == 1001
    assert calculate_composition_fee(0, 1_000_000) == 0

    print("  calculate_composition_fee: PASSED")


def test_protocol_fee():
    """Test protocol share rounding"""
    print("Testing protocol fees...")

    # 1001 * 2000 / 10000 = 200.2 -> 201
    assert calculate_protocol_fee(1001, 2000) == 201
    assert calculate_protocol_fee(1000, 2000) == 200
    assert get_protocol_fees(1001, 0, 2000) == (201, 0)

    print("  protocol fees: PASSED")


def test_composition_fees_on_active_bin():
    """Test composition fees for a deposit into the active bin"""
    print("Testing get_composition_fees...")

    params = _params()
    active_bin = _active_bin(1_000_000_000, 1_000_000_000)

    # Only A deposited into a balanced bin: roughly half of it swaps implicitly
    used_bin = _active_bin(1_000_000, 0)
    assert get_composition_fees(active_bin, used_bin, params) == (500, 0)

    # Mirror: only B deposited
    used_bin = _active_bin(0, 1_000_000)
    assert get_composition_fees(active_bin, used_bin, params) == (0, 500)

    # A deposit matching the bin's composition pays nothing
    used_bin = _active_bin(1_000_000, 1_000_000)
    assert get_composition_fees(active_bin, used_bin, params) == (0, 0)

    # Empty bin pays nothing
    assert get_composition_fees(_active_bin(0, 0), _active_bin(1_000_000, 0), params) == (0, 0)

    print("  get_composition_fees: PASSED")


def test_add_liquidity_deducts_composition_fee():
    """Test fee deduction from the active bin of a deposit"""
    print("Testing composition fee deduction...")

    active_bin = _active_bin(1_000_000_000, 1_000_000_000)
    kwargs = dict(
        strategy_type=StrategyType.SPOT,
        active_id=0,
        bin_step=10,
        lower_bin_id=-5,
        upper_bin_id=5,
        amount_a=1_000_000,
        amount_b=0,
        active_bin_of_pool=active_bin,
    )

    without_fee = calculate_add_liquidity_info(**kwargs)
    with_fee = calculate_add_liquidity_info(variable_parameters=_params(), **kwargs)

    used_bin = without_fee.get_bin(0)
    fee_a, fee_b = get_composition_fees(active_bin, used_bin, _params())
    assert fee_a > 0
    assert fee_b == 0

    charged_bin = with_fee.get_bin(0)
    assert charged_bin.amount_a == used_bin.amount_a - fee_a
    assert charged_bin.liquidity == get_liquidity(charged_bin.amount_a, charged_bin.amount_b, get_q_price_from_id(0, 10))
    assert with_fee.amount_a == without_fee.amount_a - fee_a

    # Other bins are untouched
    assert [b for b in with_fee.bins if b.bin_id != 0] == [b for b in without_fee.bins if b.bin_id != 0]

    print("  composition fee deduction: PASSED")
