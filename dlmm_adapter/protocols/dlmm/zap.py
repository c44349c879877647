"""
Swap amount search for single-coin deposits
"""

import logging
from decimal import Decimal, localcontext
from typing import Optional, Tuple

from ...types import ExactSwapAmount
from .constants import PRICE_PRECISION
from .math import ceil_decimal, floor_decimal

logger = logging.getLogger(__name__)

SEARCH_ITERATIONS = 120
# Accepted ratio band is [target * (1 - tolerance), target]
RATIO_TOLERANCE = Decimal("0.001")


def calc_exact_swap_amount(
    coin_amount: int,
    fix_amount_a: bool,
    current_price,
    target_ratio,
) -> ExactSwapAmount:
    """
    Find the smallest swap that brings a single-coin balance to a target ratio

    With fix_amount_a the caller holds only token A and swaps x of it at
    current_price (B per A); the resulting B/A must land in
    [target_ratio * 0.999, target_ratio]. Without fix_amount_a the roles are
    mirrored (A per B, ratio A/B). Overshooting the target is never accepted.

    The decimal search result is snapped to the smallest integer swap whose
    integer final amounts (output floored) still fall inside the band.

    Args:
        coin_amount: Amount of the held token
        fix_amount_a: Whether the held token is A
        current_price: Expected output per unit of input
        target_ratio: Desired other/held ratio of the final balances

    Returns:
        ExactSwapAmount; swap_amount 0 and the original balance when no swap
        can reach the band
    """
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        amount = Decimal(coin_amount)
        price = Decimal(str(current_price))
        max_ratio = Decimal(str(target_ratio))
        min_ratio = max_ratio * (1 - RATIO_TOLERANCE)

        def compute_final(x: Decimal) -> Tuple[Decimal, Decimal]:
            """(held remaining, other obtained)"""
            return amount - x, x * price

        left = Decimal(0)
        right = amount
        best: Optional[Decimal] = None

        for _ in range(SEARCH_ITERATIONS):
            mid = (left + right) / 2
            held, other = compute_final(mid)

            if held <= 0 or other <= 0:
                right = mid
                continue

            ratio = other / held
            if ratio > max_ratio:
                right = mid
            elif ratio < min_ratio:
                left = mid
            else:
                best = mid
                if min_ratio == 0:
                    break
                right = mid

        if best is None:
            logger.debug(
                f"No swap reaches ratio band [{min_ratio}, {max_ratio}] at price {price}, keeping {coin_amount}"
            )
            return _final_amounts(0, coin_amount, 0, fix_amount_a)

        swap_amount = ceil_decimal(best)
        while swap_amount < coin_amount:
            held_int = coin_amount - swap_amount
            other_int = floor_decimal(Decimal(swap_amount) * price)
            if held_int > 0 and Decimal(other_int) / Decimal(held_int) >= min_ratio:
                break
            swap_amount += 1

        other_amount = floor_decimal(Decimal(swap_amount) * price)

    return _final_amounts(swap_amount, coin_amount - swap_amount, other_amount, fix_amount_a)


def _final_amounts(swap_amount: int, held: int, other: int, fix_amount_a: bool) -> ExactSwapAmount:
    if fix_amount_a:
        return ExactSwapAmount(swap_amount=swap_amount, final_amount_a=held, final_amount_b=other)
    return ExactSwapAmount(swap_amount=swap_amount, final_amount_a=other, final_amount_b=held)
