"""
Zap Module

Single-coin deposits and withdrawals for a bin range.

A zap in holds only one token: part of it is swapped through a quote
provider so that the swap output matches what the strategy needs on the
other side. A zap out removes liquidity and quotes the swap of the side the
user does not want to keep.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import List, Optional

from ..config import ZapConfig, config as global_config
from ..errors import AggregatorError, DlmmError, InsufficientLiquidity, SwapAmountError
from ..protocols.aggregator.base import QuoteProvider
from ..protocols.dlmm.constants import PRICE_PRECISION
from ..protocols.dlmm.math import get_price_from_bin_id, get_price_per_lamport_from_bin_id, round_half_up
from ..protocols.dlmm.zap import calc_exact_swap_amount
from ..types import (
    BalancerState,
    BalanceSwapResult,
    BinAmount,
    BinLiquidityInfo,
    DepositOptions,
    DepositResult,
    LiquidityAmountResult,
    SwapResult,
    WithdrawAvailableAmount,
    WithdrawMode,
    WithdrawOptions,
    WithdrawResult,
)
from .liquidity import calculate_add_liquidity_info, calculate_remove_liquidity_info

logger = logging.getLogger(__name__)

# Balancer step sizes
SWAP_DECREASE_RATE = Decimal("0.99")
SWAP_INCREASE_RATE = Decimal("1.01")
# Never swap more than this share of the held amount
MAX_SWAP_RATE = Decimal("0.9999")
MAX_ADJUSTMENTS = 5


def _add_liquidity_info(options: DepositOptions, coin_amount: int, fix_amount_a: bool) -> BinLiquidityInfo:
    return calculate_add_liquidity_info(
        strategy_type=options.strategy_type,
        active_id=options.active_id,
        bin_step=options.bin_step,
        lower_bin_id=options.lower_bin_id,
        upper_bin_id=options.upper_bin_id,
        coin_amount=coin_amount,
        fix_amount_a=fix_amount_a,
        active_bin_of_pool=options.active_bin_of_pool,
        variable_parameters=options.variable_parameters,
    )


def calculate_liquidity_amount_enough(
    amount_a: int,
    amount_b: int,
    options: DepositOptions,
    fix_amount_a: bool,
) -> LiquidityAmountResult:
    """
    Size a deposit from one token and check the other one suffices

    Args:
        amount_a: Token A held
        amount_b: Token B held
        options: Target range and pool state
        fix_amount_a: Which held amount drives the deposit

    Returns:
        LiquidityAmountResult; remain_amount is the leftover (negative when
        short) of the token that is not fixed
    """
    fixed_amount = amount_a if fix_amount_a else amount_b
    bin_infos = _add_liquidity_info(options, fixed_amount, fix_amount_a)

    use_amount_a = bin_infos.amount_a
    use_amount_b = bin_infos.amount_b
    remain_amount = amount_b - use_amount_b if fix_amount_a else amount_a - use_amount_a

    return LiquidityAmountResult(
        liquidity=sum(b.liquidity for b in bin_infos.bins),
        use_amount_a=use_amount_a,
        use_amount_b=use_amount_b,
        fix_amount_a=fix_amount_a,
        remain_amount=remain_amount,
        is_enough_amount=remain_amount >= 0,
        bin_infos=bin_infos,
    )


def calculate_liquidity_amount_side(
    amount_a: int,
    amount_b: int,
    options: DepositOptions,
    fix_amount_a: bool,
) -> LiquidityAmountResult:
    """
    Pick the side to fix so that the deposit fits the held amounts

    Ranges above the active bin only take token A and ranges below only take
    token B, so the fixed side is forced there. Otherwise the requested side
    is tried first and flipped when the other token falls short.
    """
    fix_liquidity_amount_a = fix_amount_a
    if options.active_id < options.lower_bin_id:
        fix_liquidity_amount_a = True
    elif options.active_id > options.upper_bin_id:
        fix_liquidity_amount_a = False

    result = calculate_liquidity_amount_enough(amount_a, amount_b, options, fix_liquidity_amount_a)
    if not result.is_enough_amount:
        logger.debug(f"Token {'B' if fix_liquidity_amount_a else 'A'} short by {-result.remain_amount}, flipping side")
        result = calculate_liquidity_amount_enough(amount_a, amount_b, options, not fix_liquidity_amount_a)
    return result


@dataclass
class _Candidate:
    swap_result: SwapResult
    liquidity_info: BinLiquidityInfo
    remain_rate: Decimal


class ZapModule:
    """
    Single-coin deposit and withdrawal planner

    Quotes are requested one at a time from the quote provider. Failures
    propagate; wrap calls in infra.retry.execute_with_retry to retry them.

    Usage:
        async with AggregatorAPI() as api:
            zap = ZapModule(api, coin_type_a, coin_type_b)
            deposit = await zap.pre_calculate_deposit_amount(options, True, 1_000_000)
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        coin_type_a: str,
        coin_type_b: str,
        zap_config: Optional[ZapConfig] = None,
    ):
        """
        Initialize zap module

        Args:
            quote_provider: Swap quote source
            coin_type_a: Token A identifier passed to the quote provider
            coin_type_b: Token B identifier passed to the quote provider
            zap_config: Balancer parameters (default from config)
        """
        self._quote_provider = quote_provider
        self._coin_type_a = coin_type_a
        self._coin_type_b = coin_type_b
        self._config = zap_config if zap_config is not None else global_config.zap

    def _swap_direction(self, from_a: bool):
        if from_a:
            return self._coin_type_a, self._coin_type_b
        return self._coin_type_b, self._coin_type_a

    async def find_routers(self, from_token: str, to_token: str, amount: int) -> SwapResult:
        """
        Quote an exact-input swap

        Raises:
            SwapAmountError: amount below one base unit
            AggregatorError: provider failure or no route
        """
        if amount < 1:
            raise SwapAmountError.below_minimum(amount)

        try:
            return await self._quote_provider.find_route(from_token, to_token, amount)
        except DlmmError:
            raise
        except Exception as e:
            logger.error(f"Quote provider failed for {from_token} -> {to_token}, amount={amount}: {e}")
            raise AggregatorError.wrap(e)

    # =========================================================================
    # Zap in
    # =========================================================================

    async def calculate_balance_swap_amount(
        self,
        options: DepositOptions,
        fix_amount_a: bool,
        coin_amount: int,
    ) -> BalanceSwapResult:
        """
        Find the swap that turns coin_amount of one token into a balanced deposit

        Starts from the closed-form estimate, then adjusts the swap by 1% per
        quote until the swap output covers the other side with at most
        max_remain_rate left over. After MAX_ADJUSTMENTS + 1 quotes the search
        is exhausted and the best candidate seen (smallest positive leftover)
        is used; without any candidate the last quote's whole output is
        deposited on the other side.
        """
        if not options.is_active_in_range:
            return await self._calculate_balance_swap_amount_without_active(options, fix_amount_a, coin_amount)

        from_token, to_token = self._swap_direction(fix_amount_a)
        liquidity_info = _add_liquidity_info(options, coin_amount, fix_amount_a)
        if (liquidity_info.amount_a if fix_amount_a else liquidity_info.amount_b) == 0:
            raise SwapAmountError.below_minimum(coin_amount)

        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            if fix_amount_a:
                target_rate = Decimal(liquidity_info.amount_b) / Decimal(liquidity_info.amount_a)
            else:
                target_rate = Decimal(liquidity_info.amount_a) / Decimal(liquidity_info.amount_b)

            price_per_lamport = get_price_per_lamport_from_bin_id(options.active_id, options.bin_step)
            real_price = price_per_lamport if fix_amount_a else 1 / price_per_lamport

        try:
            price_result = await self.find_routers(from_token, to_token, coin_amount)
            if price_result.swap_in_amount > 0:
                real_price = price_result.price
        except AggregatorError as e:
            logger.warning(f"Price quote failed, using bin price {real_price}: {e}")

        exact = calc_exact_swap_amount(coin_amount, fix_amount_a, real_price, target_rate)
        logger.debug(
            f"Initial swap estimate: swap_amount={exact.swap_amount}, final_a={exact.final_amount_a}, "
            f"final_b={exact.final_amount_b}, target_rate={target_rate}, real_price={real_price}"
        )

        max_remain_rate = self._config.max_remain_rate
        swap_cap = round_half_up(Decimal(coin_amount) * MAX_SWAP_RATE)

        swap_amount_in = exact.swap_amount
        state = BalancerState.SEARCHING
        best: Optional[_Candidate] = None
        cached: Optional[_Candidate] = None
        last_swap_result: Optional[SwapResult] = None
        count = 0
        iterations = 0

        while state is BalancerState.SEARCHING:
            deposit_amount = coin_amount - swap_amount_in
            swap_result = await self.find_routers(from_token, to_token, swap_amount_in)
            last_swap_result = swap_result
            iterations += 1

            liquidity_info = _add_liquidity_info(options, deposit_amount, fix_amount_a)
            deposit_amount_other = liquidity_info.amount_b if fix_amount_a else liquidity_info.amount_a
            swap_out_amount = swap_result.swap_out_amount

            with localcontext() as ctx:
                ctx.prec = PRICE_PRECISION
                if swap_out_amount > 0:
                    remain_rate = Decimal(swap_out_amount - deposit_amount_other) / Decimal(swap_out_amount)
                else:
                    remain_rate = Decimal(-1)

            if remain_rate > 0 and (cached is None or remain_rate < cached.remain_rate):
                cached = _Candidate(swap_result, liquidity_info, remain_rate)

            if swap_out_amount > deposit_amount_other:
                if remain_rate > max_remain_rate:
                    logger.debug(
                        f"Balancer -: swap_in={swap_amount_in}, remain_rate={remain_rate}, "
                        f"deposit_other={deposit_amount_other}, count={count}"
                    )
                    swap_amount_in = round_half_up(Decimal(swap_amount_in) * SWAP_DECREASE_RATE)
                    count += 1
                else:
                    best = _Candidate(swap_result, liquidity_info, remain_rate)
                    state = BalancerState.CONVERGED
            else:
                swap_amount_in = min(swap_cap, round_half_up(Decimal(swap_amount_in) * SWAP_INCREASE_RATE))
                logger.debug(
                    f"Balancer +: swap_in={swap_amount_in}, remain_rate={remain_rate}, "
                    f"deposit_other={deposit_amount_other}, count={count}"
                )
                count += 1

            if state is BalancerState.SEARCHING and (count > MAX_ADJUSTMENTS or swap_amount_in <= 0):
                state = BalancerState.EXHAUSTED

        if state is BalancerState.CONVERGED:
            logger.info(f"Balancer converged after {iterations} quotes, remain_rate={best.remain_rate}")
            return BalanceSwapResult(best.liquidity_info, best.swap_result, state, iterations, best.remain_rate)

        if cached is not None:
            logger.warning(
                f"Balancer exhausted after {iterations} quotes, using best candidate "
                f"(remain_rate={cached.remain_rate})"
            )
            return BalanceSwapResult(cached.liquidity_info, cached.swap_result, state, iterations, cached.remain_rate)

        other_amount = round_half_up(Decimal(last_swap_result.swap_out_amount) * (1 - self._config.swap_out_buffer))
        logger.warning(
            f"Balancer exhausted after {iterations} quotes without a candidate, "
            f"depositing {other_amount} on the other side"
        )
        liquidity_info = _add_liquidity_info(options, other_amount, not fix_amount_a)
        return BalanceSwapResult(liquidity_info, last_swap_result, state, iterations)

    async def _calculate_balance_swap_amount_without_active(
        self,
        options: DepositOptions,
        fix_amount_a: bool,
        coin_amount: int,
    ) -> BalanceSwapResult:
        """Ranges on one side of the active bin take a single token; swap everything if needed"""
        swap_result = None
        deposit_fix_amount_a = fix_amount_a
        deposit_amount = coin_amount

        if options.active_id > options.upper_bin_id:
            deposit_fix_amount_a = False
            if fix_amount_a:
                swap_result = await self.find_routers(self._coin_type_a, self._coin_type_b, coin_amount)
        elif options.active_id < options.lower_bin_id:
            deposit_fix_amount_a = True
            if not fix_amount_a:
                swap_result = await self.find_routers(self._coin_type_b, self._coin_type_a, coin_amount)

        if swap_result is not None:
            deposit_amount = round_half_up(Decimal(swap_result.swap_out_amount) * (1 - self._config.swap_out_buffer))
            logger.debug(f"Swapped whole amount {coin_amount} for {swap_result.swap_out_amount}, depositing {deposit_amount}")

        liquidity_info = _add_liquidity_info(options, deposit_amount, deposit_fix_amount_a)
        return BalanceSwapResult(
            liquidity_info,
            swap_result,
            BalancerState.CONVERGED,
            iterations=1 if swap_result is not None else 0,
        )

    async def pre_calculate_deposit_amount(
        self,
        options: DepositOptions,
        fix_amount_a: bool,
        coin_amount: int,
    ) -> DepositResult:
        """
        Plan a single-coin deposit

        Args:
            options: Target range and pool state
            fix_amount_a: Whether the held token is A
            coin_amount: Amount of the held token

        Returns:
            DepositResult with the per-bin allocation and the swap to execute
        """
        logger.info(
            f"Pre-calculating deposit: {coin_amount} of token {'A' if fix_amount_a else 'B'} into "
            f"bins {options.lower_bin_id}..{options.upper_bin_id} (active {options.active_id})"
        )
        result = await self.calculate_balance_swap_amount(options, fix_amount_a, coin_amount)

        if result.liquidity_info is None:
            raise SwapAmountError.no_liquidity_info()

        return DepositResult(
            bin_infos=result.liquidity_info,
            fix_amount_a=fix_amount_a,
            coin_amount=coin_amount,
            swap_result=result.swap_result,
        )

    # =========================================================================
    # Zap out
    # =========================================================================

    def calculate_zap_out_available_amount(self, options: WithdrawOptions) -> WithdrawAvailableAmount:
        """
        Most of the receive token a withdrawal can produce

        The other token is valued at the external prices when given, else at
        the active bin price. One-sided modes leave the active bin alone.
        """
        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION

            if options.prices is not None:
                price = options.prices.coin_a_price / options.prices.coin_b_price
            else:
                price = get_price_from_bin_id(
                    options.active_id, options.bin_step, options.coin_decimal_a, options.coin_decimal_b
                )

            active_bin: Optional[BinAmount] = None
            user_total_amount_a = 0
            user_total_amount_b = 0
            for b in options.remove_bin_range:
                if b.bin_id == options.active_id:
                    active_bin = b
                user_total_amount_a += b.amount_a
                user_total_amount_b += b.amount_b

            user_total_amount_a_no_active = user_total_amount_a - (active_bin.amount_a if active_bin else 0)
            user_total_amount_b_no_active = user_total_amount_b - (active_bin.amount_b if active_bin else 0)

            scale_a = Decimal(10) ** options.coin_decimal_a
            scale_b = Decimal(10) ** options.coin_decimal_b
            transform_to_amount_b = round_half_up(Decimal(user_total_amount_a) / scale_a * price * scale_b)
            transform_to_amount_a = round_half_up(Decimal(user_total_amount_b) / scale_b / price * scale_a)

        mode = options.mode
        is_receive_coin_a = options.is_receive_coin_a
        if mode == WithdrawMode.ONLY_COIN_A:
            available_amount = user_total_amount_a_no_active if is_receive_coin_a else transform_to_amount_b
        elif mode == WithdrawMode.ONLY_COIN_B:
            user_total_amount_b = user_total_amount_b_no_active
            available_amount = transform_to_amount_a if is_receive_coin_a else user_total_amount_b
        else:
            if is_receive_coin_a:
                available_amount = transform_to_amount_a + user_total_amount_a
            else:
                available_amount = transform_to_amount_b + user_total_amount_b

        return WithdrawAvailableAmount(
            available_amount=available_amount,
            user_total_amount_a=user_total_amount_a,
            user_total_amount_b=user_total_amount_b,
            is_receive_coin_a=is_receive_coin_a,
            active_bin=active_bin,
        )

    async def pre_calculate_withdraw_amount(self, options: WithdrawOptions) -> WithdrawResult:
        """
        Plan a single-coin withdrawal of expected_receive_amount

        Raises:
            SwapAmountError: expected amount exceeds what the position can produce
            InsufficientLiquidity: the position holds nothing withdrawable
        """
        available = self.calculate_zap_out_available_amount(options)
        expected = options.expected_receive_amount
        receive_side = "A" if options.is_receive_coin_a else "B"

        if available.available_amount < expected:
            raise SwapAmountError.exceeds_available(expected, available.available_amount)
        if available.available_amount == 0:
            raise InsufficientLiquidity.no_liquidity(receive_side, expected)

        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            remove_percent = Decimal(expected) / Decimal(available.available_amount)

            if options.mode == WithdrawMode.BOTH:
                fix_amount_a = available.user_total_amount_a > 0
                total = available.user_total_amount_a if fix_amount_a else available.user_total_amount_b
                coin_amount = round_half_up(Decimal(total) * remove_percent)
                remove_liquidity_info = calculate_remove_liquidity_info(
                    options.remove_bin_range,
                    options.active_id,
                    coin_amount,
                    fix_amount_a=fix_amount_a,
                )
            else:
                is_only_a = options.mode == WithdrawMode.ONLY_COIN_A
                total = _side_total_without_active(options.remove_bin_range, options.active_id, is_only_a)
                coin_amount = round_half_up(Decimal(total) * remove_percent)
                remove_liquidity_info = calculate_remove_liquidity_info(
                    options.remove_bin_range,
                    options.active_id,
                    coin_amount,
                    is_only_a=is_only_a,
                )

        swap_result = None
        if options.is_receive_coin_a and remove_liquidity_info.amount_b > 0:
            swap_result = await self.find_routers(self._coin_type_b, self._coin_type_a, remove_liquidity_info.amount_b)
        elif not options.is_receive_coin_a and remove_liquidity_info.amount_a > 0:
            swap_result = await self.find_routers(self._coin_type_a, self._coin_type_b, remove_liquidity_info.amount_a)

        logger.info(
            f"Pre-calculated withdrawal ({options.mode.value}): remove_percent={remove_percent}, "
            f"amount_a={remove_liquidity_info.amount_a}, amount_b={remove_liquidity_info.amount_b}"
        )
        return WithdrawResult(
            remove_liquidity_info=remove_liquidity_info,
            mode=options.mode,
            is_receive_coin_a=options.is_receive_coin_a,
            expected_receive_amount=expected,
            remove_percent=remove_percent,
            swap_result=swap_result,
        )


def _side_total_without_active(bins: List[BinAmount], active_id: int, is_only_a: bool) -> int:
    """Token held by the bins a one-sided removal draws from"""
    if is_only_a:
        return sum(b.amount_a for b in bins if b.bin_id > active_id)
    return sum(b.amount_b for b in bins if b.bin_id < active_id)
