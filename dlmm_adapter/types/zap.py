"""
Single-coin deposit (zap in) and withdrawal (zap out) type definitions
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from .bin import BinAmount, BinLiquidityInfo
from .fee import VariableParameters
from .strategy import StrategyType


@dataclass(frozen=True)
class SwapResult:
    """
    Quote returned by a swap router

    Attributes:
        swap_in_amount: Amount of the input token consumed
        swap_out_amount: Amount of the output token produced
        route_obj: Opaque routing payload for the transaction layer
    """
    swap_in_amount: int
    swap_out_amount: int
    route_obj: Any = None

    @property
    def price(self) -> Decimal:
        """Realized output per unit of input"""
        if self.swap_in_amount == 0:
            return Decimal(0)
        return Decimal(self.swap_out_amount) / Decimal(self.swap_in_amount)


@dataclass(frozen=True)
class ExactSwapAmount:
    """Swap amount that brings a single-coin balance to a target ratio"""
    swap_amount: int
    final_amount_a: int
    final_amount_b: int


@dataclass
class LiquidityAmountResult:
    """
    How much of each token a range absorbs when one side is fixed

    remain_amount is the unused amount of the non-fixed token; negative when
    the caller did not supply enough of it (is_enough_amount False).
    """
    liquidity: int
    use_amount_a: int
    use_amount_b: int
    fix_amount_a: bool
    remain_amount: int
    is_enough_amount: bool
    bin_infos: Optional[BinLiquidityInfo] = None
    swap_result: Optional[SwapResult] = None


class BalancerState(Enum):
    """Lifecycle of the swap-amount search"""
    SEARCHING = "searching"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass
class DepositOptions:
    """
    Position and pool parameters for a deposit

    Attributes:
        strategy_type: Distribution shape
        active_id: Current active bin of the pool
        bin_step: Bin step in basis points
        lower_bin_id: First bin of the position (inclusive)
        upper_bin_id: Last bin of the position (inclusive)
        active_bin_of_pool: Current composition of the active bin, if known
        variable_parameters: Pool fee state; enables composition fee deduction
    """
    strategy_type: StrategyType
    active_id: int
    bin_step: int
    lower_bin_id: int
    upper_bin_id: int
    active_bin_of_pool: Optional[BinAmount] = None
    variable_parameters: Optional[VariableParameters] = None

    @property
    def is_active_in_range(self) -> bool:
        return self.lower_bin_id <= self.active_id <= self.upper_bin_id


@dataclass
class BalanceSwapResult:
    """Outcome of the swap balancer"""
    liquidity_info: Optional[BinLiquidityInfo]
    swap_result: Optional[SwapResult]
    state: BalancerState
    iterations: int = 0
    remain_rate: Optional[Decimal] = None


@dataclass
class DepositResult:
    """
    Planned single-coin deposit

    fix_amount_a is the side the caller supplied; coin_amount the amount of it.
    """
    bin_infos: BinLiquidityInfo
    fix_amount_a: bool
    coin_amount: int
    swap_result: Optional[SwapResult] = None

    @property
    def use_amount_a(self) -> int:
        return self.bin_infos.amount_a

    @property
    def use_amount_b(self) -> int:
        return self.bin_infos.amount_b

    @property
    def liquidity(self) -> int:
        return sum(b.liquidity for b in self.bin_infos.bins)

    @property
    def remain_amount(self) -> int:
        """Leftover of the swapped-into token after the deposit"""
        if self.swap_result is None:
            return 0
        used = self.use_amount_b if self.fix_amount_a else self.use_amount_a
        return self.swap_result.swap_out_amount - used


class WithdrawMode(Enum):
    """Which side of the position is removed"""
    ONLY_COIN_A = "OnlyCoinA"
    ONLY_COIN_B = "OnlyCoinB"
    BOTH = "Both"


@dataclass(frozen=True)
class TokenPrices:
    """External USD (or common quote) prices of both tokens"""
    coin_a_price: Decimal
    coin_b_price: Decimal


@dataclass
class WithdrawOptions:
    """
    Inputs for a single-coin withdrawal

    Attributes:
        remove_bin_range: Position bins eligible for removal
        active_id: Current active bin of the pool
        bin_step: Bin step in basis points
        is_receive_coin_a: Whether the user wants to end up with token A
        mode: Which side of the position to remove
        coin_decimal_a: Token A decimals
        coin_decimal_b: Token B decimals
        expected_receive_amount: Target amount of the receive token
        prices: External prices, else the active bin price is used
    """
    remove_bin_range: List[BinAmount]
    active_id: int
    bin_step: int
    is_receive_coin_a: bool
    mode: WithdrawMode
    coin_decimal_a: int
    coin_decimal_b: int
    expected_receive_amount: int = 0
    prices: Optional[TokenPrices] = None


@dataclass
class WithdrawAvailableAmount:
    """Maximum amount of the receive token a withdrawal can produce"""
    available_amount: int
    user_total_amount_a: int
    user_total_amount_b: int
    is_receive_coin_a: bool
    active_bin: Optional[BinAmount] = None


@dataclass
class WithdrawResult:
    """Planned single-coin withdrawal"""
    remove_liquidity_info: BinLiquidityInfo
    mode: WithdrawMode
    is_receive_coin_a: bool
    expected_receive_amount: int
    remove_percent: Decimal
    swap_result: Optional[SwapResult] = None
