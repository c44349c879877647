"""
Test DLMM Math Module

Tests for Q64.64 exponentiation, bin/price conversions, storage keys and
constant-sum liquidity helpers.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dlmm_adapter.protocols.dlmm.constants import BIN_BOUND, MAX_U128, ONE
from dlmm_adapter.protocols.dlmm.math import (
    bin_score,
    calculate_out_by_share,
    find_min_max_bin_id,
    from_x64,
    get_amounts_from_liquidity,
    get_bin_id_from_lamport_price,
    get_bin_id_from_price,
    get_bin_shift,
    get_liquidity,
    get_price_from_bin_id,
    get_price_per_lamport_from_bin_id,
    get_q_price_from_id,
    pow_q64,
    price_range_to_bin_range,
    resolve_bin_position,
    round_half_up,
    safe_amount,
    score_to_bin_id,
    validate_bin_id,
)
from dlmm_adapter.errors import AmountTooSmall, InvalidBinId, InvalidDeltaLiquidity, LiquiditySupplyIsZero
from dlmm_adapter.types import BinAmount


def test_pow_q64():
    """Test Q64.64 exponentiation"""
    print("Testing pow_q64...")

    base = ONE + (1 << 64) // 10000  # 1.0001

    # 1.0001^100 ~= 1.01005
    result = from_x64(pow_q64(base, 100))
    expected = Decimal("1.0001") ** 100
    assert abs(result - expected) / expected < Decimal("1e-6"), f"Expected ~{expected}, got {result}"

    # Negative exponent is the reciprocal
    inverse = from_x64(pow_q64(base, -100))
    assert abs(inverse * expected - 1) < Decimal("1e-6")

    # Identity and overflow guard
    assert pow_q64(base, 0) == ONE
    assert pow_q64(base, 0x80001) == 0
    assert pow_q64(base, -0x80001) == 0
    # The bound itself is still computed, bit 0x80000 lies outside the loop
    assert pow_q64(base, 0x80000) != 0

    print("  pow_q64: PASSED")


def test_q_price_monotonic():
    """Test that bin prices strictly increase with the bin id"""
    print("Testing get_q_price_from_id monotonicity...")

    assert get_q_price_from_id(0, 25) == ONE

    for bin_step in (1, 10, 25, 100):
        previous = None
        for bin_id in range(-50, 51):
            q_price = get_q_price_from_id(bin_id, bin_step)
            if previous is not None:
                assert q_price > previous, f"bin_step={bin_step}, bin_id={bin_id}"
            previous = q_price

    print("  get_q_price_from_id monotonicity: PASSED")


def test_q_price_matches_decimal_price():
    """Test that the fixed point and decimal prices agree"""
    print("Testing q_price vs price_per_lamport...")

    for bin_id in (-5000, -100, 0, 100, 5000):
        q_value = from_x64(get_q_price_from_id(bin_id, 25))
        decimal_value = get_price_per_lamport_from_bin_id(bin_id, 25)
        assert abs(q_value - decimal_value) / decimal_value < Decimal("1e-12")

    print("  q_price vs price_per_lamport: PASSED")


def test_bin_id_price_round_trip():
    """Test bin id -> price -> bin id round trip"""
    print("Testing bin id round trip...")

    for bin_step in (1, 10, 25):
        for bin_id in (-5000, -1000, -1, 0, 1, 2273, 5000):
            price = get_price_per_lamport_from_bin_id(bin_id, bin_step)
            assert get_bin_id_from_lamport_price(price, bin_step, True) == bin_id
            assert get_bin_id_from_lamport_price(price, bin_step, False) == bin_id

    # A price between two bins rounds according to the flag
    between = get_price_per_lamport_from_bin_id(10, 25) * Decimal("1.001")
    assert get_bin_id_from_lamport_price(between, 25, True) == 10
    assert get_bin_id_from_lamport_price(between, 25, False) == 11

    print("  bin id round trip: PASSED")


def test_display_price_conversion():
    """Test display prices with token decimals"""
    print("Testing display price conversion...")

    # Bin 0 is 1:1 in base units; with 9 vs 6 decimals one whole A is worth 1000 B
    price = get_price_from_bin_id(0, 10, 9, 6)
    assert price == Decimal(1000)
    assert get_bin_id_from_price(price, 10, True, 9, 6) == 0

    lower_bin_id, upper_bin_id = price_range_to_bin_range("0.95", "1.05", 10, 6, 6)
    assert lower_bin_id < 0 < upper_bin_id
    assert get_price_per_lamport_from_bin_id(lower_bin_id, 10) <= Decimal("0.95")
    assert get_price_per_lamport_from_bin_id(upper_bin_id, 10) >= Decimal("1.05")

    print("  display price conversion: PASSED")


def test_bin_score():
    """Test bin storage keys"""
    print("Testing bin_score...")

    assert bin_score(-BIN_BOUND) == 0
    assert bin_score(0) == BIN_BOUND
    assert score_to_bin_id(bin_score(-1234)) == -1234

    group, offset = resolve_bin_position(bin_score(5))
    assert group == (BIN_BOUND + 5) >> 4
    assert offset == (BIN_BOUND + 5) & 0xF

    with pytest.raises(InvalidBinId):
        bin_score(BIN_BOUND + 1)
    with pytest.raises(InvalidBinId):
        validate_bin_id(-BIN_BOUND - 1)

    print("  bin_score: PASSED")


def test_find_min_max_bin_id():
    """Test representable bin range"""
    print("Testing find_min_max_bin_id...")

    min_bin_id, max_bin_id = find_min_max_bin_id(10)
    assert min_bin_id < 0 < max_bin_id
    assert get_q_price_from_id(min_bin_id, 10) > 1
    assert 0 < get_q_price_from_id(max_bin_id, 10) < MAX_U128

    print("  find_min_max_bin_id: PASSED")


def test_get_bin_shift():
    """Test slippage to bin shift"""
    print("Testing get_bin_shift...")

    # ln(1.01) / ln(1.001) ~= 9.955
    assert get_bin_shift(0, 10, "0.01") == 9
    assert get_bin_shift(100, 10, 0) == 0

    print("  get_bin_shift: PASSED")


def test_liquidity_helpers():
    """Test constant-sum liquidity and share redemption"""
    print("Testing liquidity helpers...")

    q_price = get_q_price_from_id(0, 10)
    assert get_liquidity(100, 200, q_price) == 300 * ONE

    assert get_amounts_from_liquidity(1000, 2000, 250, 1000) == (250, 500)
    assert get_amounts_from_liquidity(1000, 2000, 0, 1000) == (0, 0)
    with pytest.raises(LiquiditySupplyIsZero):
        get_amounts_from_liquidity(1000, 2000, 1, 0)
    with pytest.raises(InvalidDeltaLiquidity):
        get_amounts_from_liquidity(1000, 2000, 1001, 1000)

    bin_amount = BinAmount(bin_id=0, amount_a=1000, amount_b=999, price_per_lamport=Decimal(1), liquidity=3000)
    assert calculate_out_by_share(bin_amount, 1000) == (333, 333)
    assert calculate_out_by_share(bin_amount, 5000) == (1000, 999)
    assert calculate_out_by_share(bin_amount.with_amounts(1000, 999, 0), 10) == (0, 0)

    print("  liquidity helpers: PASSED")


def test_rounding_helpers():
    """Test rounding and dust rules"""
    print("Testing rounding helpers...")

    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("2.4999")) == 2
    assert safe_amount(Decimal("7.9")) == 7
    assert safe_amount(0) == 0
    with pytest.raises(AmountTooSmall):
        safe_amount(Decimal("0.5"))

    print("  rounding helpers: PASSED")
