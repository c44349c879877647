"""
Zap Module Unit Tests

Tests the swap amount search, the single-coin deposit balancer and the
single-coin withdrawal planner against an in-memory quote provider.
"""

import asyncio
import sys
from decimal import Decimal, localcontext
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dlmm_adapter.config import ZapConfig
from dlmm_adapter.errors import AggregatorError, InsufficientLiquidity, SwapAmountError
from dlmm_adapter.modules.zap import MAX_ADJUSTMENTS, ZapModule, calculate_liquidity_amount_side
from dlmm_adapter.protocols.aggregator.base import QuoteProvider
from dlmm_adapter.protocols.dlmm.math import get_liquidity, get_price_per_lamport_from_bin_id, get_q_price_from_id
from dlmm_adapter.protocols.dlmm.zap import calc_exact_swap_amount
from dlmm_adapter.types import (
    BalancerState,
    BinAmount,
    DepositOptions,
    StrategyType,
    SwapResult,
    TokenPrices,
    WithdrawMode,
    WithdrawOptions,
)


COIN_A = "0x2::sui::SUI"
COIN_B = "0x5d4b::coin::USDC"


class FakeQuoteProvider:
    """Quotes out = floor(amount * rate); rate may depend on the call number"""

    def __init__(self, rate=1, later_rate=None, fail_first=False):
        self.rate = Decimal(str(rate))
        self.later_rate = Decimal(str(later_rate)) if later_rate is not None else None
        self.fail_first = fail_first
        self.calls = []

    async def find_route(self, from_token, to_token, amount):
        self.calls.append((from_token, to_token, amount))
        if self.fail_first and len(self.calls) == 1:
            raise AggregatorError.timeout("http://router/find_routes", 1.0)
        rate = self.rate
        if self.later_rate is not None and len(self.calls) > 1:
            rate = self.later_rate
        return SwapResult(swap_in_amount=amount, swap_out_amount=int(Decimal(amount) * rate))


class BrokenQuoteProvider:
    async def find_route(self, from_token, to_token, amount):
        raise ValueError("connection reset")


def _zap(provider):
    return ZapModule(
        provider,
        COIN_A,
        COIN_B,
        ZapConfig(
            max_remain_rate=Decimal("0.02"),
            swap_out_buffer=Decimal("0.001"),
        ),
    )


def _deposit_options(lower=-5, upper=5, active_id=0):
    return DepositOptions(
        strategy_type=StrategyType.SPOT,
        active_id=active_id,
        bin_step=10,
        lower_bin_id=lower,
        upper_bin_id=upper,
    )


def _bin(bin_id, amount_a, amount_b):
    return BinAmount(
        bin_id=bin_id,
        amount_a=amount_a,
        amount_b=amount_b,
        price_per_lamport=Decimal(1),
        liquidity=get_liquidity(amount_a, amount_b, get_q_price_from_id(bin_id, 10)),
    )


def _position_bins():
    return [
        _bin(-2, 0, 1000),
        _bin(-1, 0, 1000),
        _bin(0, 500, 500),
        _bin(1, 1000, 0),
        _bin(2, 1000, 0),
    ]


def _withdraw_options(mode, is_receive_coin_a, expected=0, bins=None):
    return WithdrawOptions(
        remove_bin_range=bins if bins is not None else _position_bins(),
        active_id=0,
        bin_step=10,
        is_receive_coin_a=is_receive_coin_a,
        mode=mode,
        coin_decimal_a=6,
        coin_decimal_b=6,
        expected_receive_amount=expected,
        prices=TokenPrices(coin_a_price=Decimal(1), coin_b_price=Decimal(1)),
    )


# =============================================================================
# Exact swap amount search
# =============================================================================

def test_calc_exact_swap_amount():
    """Test the binary search lands inside the ratio band"""
    print("Testing calc_exact_swap_amount...")

    result = calc_exact_swap_amount(1_000_000, True, "1.2", "1.2")
    assert result.swap_amount + result.final_amount_a == 1_000_000
    ratio = Decimal(result.final_amount_b) / Decimal(result.final_amount_a)
    assert Decimal("1.1988") <= ratio <= Decimal("1.2")

    # Holding B: final A / final B hits the target
    mirror = calc_exact_swap_amount(1_000_000, False, "0.5", "0.25")
    assert mirror.swap_amount + mirror.final_amount_b == 1_000_000
    ratio = Decimal(mirror.final_amount_a) / Decimal(mirror.final_amount_b)
    assert Decimal("0.24975") <= ratio <= Decimal("0.25")

    # A zero price can never produce the other token
    unreachable = calc_exact_swap_amount(1_000_000, True, 0, "1.2")
    assert unreachable.swap_amount == 0
    assert unreachable.final_amount_a == 1_000_000
    assert unreachable.final_amount_b == 0

    print("  calc_exact_swap_amount: PASSED")


# =============================================================================
# Zap in
# =============================================================================

class TestBalanceSwap:
    """Tests for the single-coin deposit balancer"""

    def test_converges(self):
        provider = FakeQuoteProvider(rate=1)
        zap = _zap(provider)

        result = asyncio.run(zap.calculate_balance_swap_amount(_deposit_options(), True, 1_000_000_000))

        assert result.state is BalancerState.CONVERGED
        assert len(provider.calls) <= 7
        assert 0 < result.remain_rate <= Decimal("0.02")
        # Initial price quote uses the whole amount, later quotes the swap amount
        assert provider.calls[0] == (COIN_A, COIN_B, 1_000_000_000)
        assert result.swap_result.swap_out_amount >= result.liquidity_info.amount_b
        assert result.swap_result.swap_in_amount + result.liquidity_info.amount_a <= 1_000_000_000

    @pytest.mark.parametrize("fix_amount_a", [True, False])
    @pytest.mark.parametrize("strategy_type", list(StrategyType))
    @pytest.mark.parametrize("active_id,bin_step", [(100, 25), (-300, 10), (7, 1)])
    def test_outcome_at_bin_price(self, active_id, bin_step, strategy_type, fix_amount_a):
        """Quotes at the active bin price either converge or exhaust on the best candidate"""
        with localcontext() as ctx:
            ctx.prec = 40
            price = get_price_per_lamport_from_bin_id(active_id, bin_step)
            rate = price if fix_amount_a else 1 / price
        provider = FakeQuoteProvider(rate=rate)
        zap = _zap(provider)
        options = DepositOptions(
            strategy_type=strategy_type,
            active_id=active_id,
            bin_step=bin_step,
            lower_bin_id=active_id - 20,
            upper_bin_id=active_id + 15,
        )

        result = asyncio.run(zap.calculate_balance_swap_amount(options, fix_amount_a, 1_000_000_000))

        # One price quote plus one quote per balancing step
        assert len(provider.calls) == result.iterations + 1
        assert result.remain_rate is not None
        other_amount = result.liquidity_info.amount_b if fix_amount_a else result.liquidity_info.amount_a
        assert 0 < other_amount <= result.swap_result.swap_out_amount
        if result.state is BalancerState.CONVERGED:
            assert 0 < result.remain_rate <= Decimal("0.02")
            assert result.iterations <= MAX_ADJUSTMENTS + 1
        else:
            # A 1% swap step moves the leftover by about 2%, so it can jump over the band
            assert result.state is BalancerState.EXHAUSTED
            assert result.iterations == MAX_ADJUSTMENTS + 1
            assert Decimal("0.02") < result.remain_rate < Decimal("0.05")

    def test_exhausted_uses_best_candidate(self):
        # The real swap pays far more than the first quote suggested
        provider = FakeQuoteProvider(rate=1, later_rate="1.3")
        zap = _zap(provider)

        result = asyncio.run(zap.calculate_balance_swap_amount(_deposit_options(), True, 1_000_000_000))

        assert result.state is BalancerState.EXHAUSTED
        assert result.iterations == 6
        assert result.remain_rate > Decimal("0.02")
        assert result.liquidity_info is not None
        assert result.swap_result.swap_out_amount > result.liquidity_info.amount_b

    def test_exhausted_without_candidate_deposits_other_side(self):
        # Every quote falls short of what the deposit needs
        provider = FakeQuoteProvider(rate=1, later_rate="0.1")
        zap = _zap(provider)

        result = asyncio.run(zap.calculate_balance_swap_amount(_deposit_options(), True, 1_000_000_000))

        assert result.state is BalancerState.EXHAUSTED
        assert result.remain_rate is None
        last_out = result.swap_result.swap_out_amount
        assert 0 < result.liquidity_info.amount_b <= last_out

    def test_initial_quote_failure_falls_back_to_bin_price(self):
        provider = FakeQuoteProvider(rate=1, fail_first=True)
        zap = _zap(provider)

        result = asyncio.run(zap.calculate_balance_swap_amount(_deposit_options(), True, 1_000_000_000))

        assert result.state is BalancerState.CONVERGED

    def test_range_above_active_swaps_everything(self):
        provider = FakeQuoteProvider(rate=1)
        zap = _zap(provider)
        options = _deposit_options(lower=5, upper=10)

        result = asyncio.run(zap.calculate_balance_swap_amount(options, False, 1_000_000))

        assert provider.calls == [(COIN_B, COIN_A, 1_000_000)]
        assert result.iterations == 1
        assert result.liquidity_info.amount_b == 0
        assert 999_000 - 6 <= result.liquidity_info.amount_a <= 999_000

    def test_range_above_active_holding_a_needs_no_swap(self):
        provider = FakeQuoteProvider(rate=1)
        zap = _zap(provider)
        options = _deposit_options(lower=5, upper=10)

        result = asyncio.run(zap.calculate_balance_swap_amount(options, True, 1_000_000))

        assert provider.calls == []
        assert result.swap_result is None
        assert result.iterations == 0
        assert result.liquidity_info.amount_a <= 1_000_000

    def test_pre_calculate_deposit_amount(self):
        zap = _zap(FakeQuoteProvider(rate=1))

        deposit = asyncio.run(zap.pre_calculate_deposit_amount(_deposit_options(), False, 1_000_000_000))

        assert deposit.fix_amount_a is False
        assert deposit.coin_amount == 1_000_000_000
        assert deposit.remain_amount >= 0
        assert deposit.liquidity > 0
        assert deposit.swap_result.swap_in_amount + deposit.use_amount_b <= 1_000_000_000


class TestFindRouters:
    """Tests for quote validation and error wrapping"""

    def test_rejects_zero_amount(self):
        zap = _zap(FakeQuoteProvider())
        with pytest.raises(SwapAmountError):
            asyncio.run(zap.find_routers(COIN_A, COIN_B, 0))

    def test_wraps_provider_errors(self):
        zap = _zap(BrokenQuoteProvider())
        with pytest.raises(AggregatorError) as exc_info:
            asyncio.run(zap.find_routers(COIN_A, COIN_B, 100))
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_fake_provider_satisfies_protocol(self):
        assert isinstance(FakeQuoteProvider(), QuoteProvider)


def test_liquidity_amount_side():
    """Test side selection for a two-token deposit"""
    print("Testing calculate_liquidity_amount_side...")

    # Range above the active bin only takes A, whatever the caller asked
    above = calculate_liquidity_amount_side(1_000_000, 0, _deposit_options(lower=5, upper=10), False)
    assert above.fix_amount_a is True
    assert above.use_amount_b == 0
    assert above.is_enough_amount

    # Not enough B to match 1e6 A, so B drives the deposit instead
    flipped = calculate_liquidity_amount_side(1_000_000, 1000, _deposit_options(), True)
    assert flipped.fix_amount_a is False
    assert flipped.is_enough_amount
    assert flipped.use_amount_b <= 1000
    assert flipped.remain_amount == 1_000_000 - flipped.use_amount_a

    print("  calculate_liquidity_amount_side: PASSED")


# =============================================================================
# Zap out
# =============================================================================

class TestWithdraw:
    """Tests for single-coin withdrawal planning"""

    def test_available_amounts(self):
        zap = _zap(FakeQuoteProvider())

        both_a = zap.calculate_zap_out_available_amount(_withdraw_options(WithdrawMode.BOTH, True))
        assert both_a.available_amount == 5000
        assert both_a.active_bin.bin_id == 0

        only_a = zap.calculate_zap_out_available_amount(_withdraw_options(WithdrawMode.ONLY_COIN_A, True))
        assert only_a.available_amount == 2000

        only_b = zap.calculate_zap_out_available_amount(_withdraw_options(WithdrawMode.ONLY_COIN_B, False))
        assert only_b.available_amount == 2000

        only_a_as_b = zap.calculate_zap_out_available_amount(_withdraw_options(WithdrawMode.ONLY_COIN_A, False))
        assert only_a_as_b.available_amount == 2500

    def test_available_amount_at_bin_price(self):
        zap = _zap(FakeQuoteProvider())
        options = _withdraw_options(WithdrawMode.BOTH, False)
        options.prices = None

        available = zap.calculate_zap_out_available_amount(options)

        # Bin 0 prices A at exactly one B
        assert available.available_amount == 5000

    def test_both_sides_swaps_unwanted_token(self):
        provider = FakeQuoteProvider(rate=1)
        zap = _zap(provider)

        result = asyncio.run(zap.pre_calculate_withdraw_amount(
            _withdraw_options(WithdrawMode.BOTH, True, expected=2500)
        ))

        assert result.remove_percent == Decimal("0.5")
        assert result.remove_liquidity_info.amount_a == 1250
        assert result.remove_liquidity_info.amount_b == 1250
        assert provider.calls == [(COIN_B, COIN_A, 1250)]
        assert result.swap_result.swap_out_amount == 1250

    def test_one_sided_needs_no_swap(self):
        provider = FakeQuoteProvider(rate=1)
        zap = _zap(provider)

        result = asyncio.run(zap.pre_calculate_withdraw_amount(
            _withdraw_options(WithdrawMode.ONLY_COIN_A, True, expected=1000)
        ))

        assert result.remove_liquidity_info.bin_ids == [1, 2]
        assert result.remove_liquidity_info.amount_a == 1000
        assert result.remove_liquidity_info.amount_b == 0
        assert result.swap_result is None
        assert provider.calls == []

    def test_exceeding_available_amount(self):
        zap = _zap(FakeQuoteProvider())
        with pytest.raises(SwapAmountError):
            asyncio.run(zap.pre_calculate_withdraw_amount(
                _withdraw_options(WithdrawMode.BOTH, True, expected=6000)
            ))

    def test_nothing_to_withdraw(self):
        zap = _zap(FakeQuoteProvider())
        bins = [_bin(-2, 0, 1000)]
        with pytest.raises(InsufficientLiquidity):
            asyncio.run(zap.pre_calculate_withdraw_amount(
                _withdraw_options(WithdrawMode.ONLY_COIN_A, True, expected=0, bins=bins)
            ))
