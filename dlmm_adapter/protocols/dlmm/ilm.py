"""
Initial Liquidity Market (ILM) launch curve

A launch pool sells A = total_supply * share / 100 tokens along

    p(c) = f * (c / A)^k + i

where c is the amount sold, i the initial price, f = max_price - i and k the
curvature. calculate_ilm samples that curve, its token density over price,
the quote value each bin between the initial and maximum price has to hold,
and two lookup tables (by amount sold and by price).

Everything here is float math for charts and tables; bin deposits
themselves are sized by the strategy engine.
"""

import logging
import math
from decimal import Decimal
from typing import List, Tuple

from ...errors import InvalidParams
from ...types import Axis, CurveData, IlmConfig, IlmInputOptions, IlmResult, TokenTableRow
from .math import get_bin_id_from_lamport_price, get_price_per_lamport_from_bin_id

logger = logging.getLogger(__name__)

# Price table step is price_diff / 10, truncated to 11 decimal places
PRICE_TABLE_STEP_SCALE = 10 ** 10
PRICE_TABLE_STEP_DIVISOR = 10 ** 11
# Liquidity curve samples advance by price_diff / 100
LIQUIDITY_STEP_DIVISOR = 100


def _pow(base: float, exponent: float) -> float:
    """base^exponent with base clamped at 0; 0 to a negative power is inf"""
    base = max(base, 0.0)
    if base == 0.0 and exponent < 0:
        return math.inf
    return math.pow(base, exponent)


class IlmCurve:
    """Closed forms of p(c) = f * (c / A)^k + i"""

    def __init__(self, initial_price: float, price_diff: float, pool_supply: float, curvature: float):
        self.initial_price = initial_price
        self.price_diff = price_diff
        self.pool_supply = pool_supply
        self.curvature = curvature

    def price(self, withdrawn: float) -> float:
        """Price after `withdrawn` tokens are sold"""
        return self.price_diff * _pow(withdrawn / self.pool_supply, self.curvature) + self.initial_price

    def _antiderivative(self, c: float) -> float:
        k = self.curvature
        return (
            self.price_diff * math.pow(self.pool_supply, -k) * _pow(c, k + 1) / (k + 1)
            + self.initial_price * c
        )

    def integrate(self, upper: float, lower: float = 0.0) -> float:
        """Quote token paid for the tokens sold between lower and upper"""
        return self._antiderivative(upper) - self._antiderivative(lower)

    def withdrawn_at(self, price: float) -> float:
        """Tokens sold once the curve reaches price (inverse of price())"""
        return self.pool_supply * _pow((price - self.initial_price) / self.price_diff, 1 / self.curvature)

    def liquidity(self, price: float) -> float:
        """Token density d(withdrawn)/d(price)"""
        k = self.curvature
        return (
            self.pool_supply * _pow(price - self.initial_price, 1 / k - 1)
            / (k * math.pow(self.price_diff, 1 / k))
        )


def _validate(
    curvature: float,
    initial_price: float,
    max_price: float,
    bin_step: int,
    total_supply: float,
    share: float,
    config: IlmConfig,
) -> bool:
    """Check the launch parameters, return whether the launch is flat"""
    if not 0 < share <= 100:
        raise InvalidParams.invalid("pool_share_percentage", "must be greater than 0 and at most 100")
    if initial_price <= 0:
        raise InvalidParams.invalid("initial_price", "must be positive")
    if total_supply <= 0:
        raise InvalidParams.invalid("total_supply", "must be positive")
    if bin_step <= 0:
        raise InvalidParams.invalid("bin_step", "must be positive")
    if curvature < 0:
        raise InvalidParams.invalid("curvature", "must not be negative")
    if max_price < initial_price:
        raise InvalidParams.invalid("max_price", "must be greater than or equal to initial_price")
    if max_price == initial_price and curvature != 0:
        raise InvalidParams.invalid("curvature", "must be 0 when max_price equals initial_price")
    if max_price != initial_price and curvature == 0:
        raise InvalidParams.invalid("curvature", "0 requires max_price to equal initial_price")

    if config.price_curve_points_num < 2:
        raise InvalidParams.invalid("price_curve_points_num", "must be at least 2")
    for name in ("liquidity_distribution_num", "tokens_table_num", "price_table_num"):
        if getattr(config, name) < 1:
            raise InvalidParams.invalid(name, "must be at least 1")

    return max_price == initial_price


def _bin_price(bin_id: int, bin_step: int) -> float:
    return float(get_price_per_lamport_from_bin_id(bin_id, bin_step))


def _bin_heights(curve: IlmCurve, max_price: float, bin_step: int) -> Tuple[List[float], List[float]]:
    """Bin prices from the bin of the initial price up to the bin of the max price, with quote value per bin"""
    min_bin_id = get_bin_id_from_lamport_price(Decimal(repr(curve.initial_price)), bin_step, False)
    max_bin_id = get_bin_id_from_lamport_price(Decimal(repr(max_price)), bin_step, False)

    prices = []
    heights = []
    price = _bin_price(min_bin_id, bin_step)
    for bin_id in range(min_bin_id, max_bin_id + 1):
        next_price = _bin_price(bin_id + 1, bin_step)
        token_diff = curve.withdrawn_at(next_price) - curve.withdrawn_at(price)
        prices.append(price)
        heights.append(token_diff * price)
        price = next_price

    logger.debug(f"ILM bins {min_bin_id}..{max_bin_id} ({len(prices)} bins), bin_step={bin_step}")
    return prices, heights


def calculate_ilm(options: IlmInputOptions) -> IlmResult:
    """
    Plan an initial liquidity market

    Args:
        options: Launch curve parameters; numbers may be given as strings

    Returns:
        IlmResult with the sampled curves, per-bin values and lookup tables

    Raises:
        InvalidParams: inconsistent prices, curvature, share or sample counts
    """
    curvature = float(options.curvature)
    initial_price = float(options.initial_price)
    max_price = float(options.max_price)
    total_supply = float(options.total_supply)
    share = float(options.pool_share_percentage)
    bin_step = options.bin_step
    config = options.config

    flat = _validate(curvature, initial_price, max_price, bin_step, total_supply, share, config)

    pool_supply = total_supply * share / 100
    price_diff = max_price - initial_price
    curve = IlmCurve(initial_price, price_diff, pool_supply, curvature)

    if flat:
        bin_prices, bin_heights = [initial_price], [initial_price * pool_supply]
    else:
        bin_prices, bin_heights = _bin_heights(curve, max_price, bin_step)

    points_num = config.price_curve_points_num
    price_points = []
    for index in range(points_num):
        x = index * pool_supply / (points_num - 1)
        price_points.append(Axis(x, max_price if flat else curve.price(x)))

    if flat:
        liquidity_curve = CurveData(
            data=[
                Axis(initial_price, 0.0),
                Axis(initial_price, pool_supply / 2),
                Axis(initial_price, pool_supply),
            ],
            min_y=0.0,
            max_y=pool_supply,
        )
    else:
        liquidity_step = price_diff / LIQUIDITY_STEP_DIVISOR
        liquidity_points = []
        for index in range(config.liquidity_distribution_num):
            x = initial_price + index * liquidity_step
            liquidity_points.append(Axis(x, curve.liquidity(x)))
        liquidity_curve = CurveData.from_points(liquidity_points)

    tokens_table = []
    for index in range(config.tokens_table_num + 1):
        withdrawn = pool_supply * index / config.tokens_table_num
        tokens_table.append(TokenTableRow(withdrawn, curve.price(withdrawn), curve.integrate(withdrawn)))

    if flat:
        price_table = [TokenTableRow(pool_supply, initial_price, pool_supply * initial_price)]
    else:
        price_step = math.floor(price_diff * PRICE_TABLE_STEP_SCALE) / PRICE_TABLE_STEP_DIVISOR
        price_table = []
        for index in range(config.price_table_num + 1):
            price = initial_price + index * price_step
            withdrawn = curve.withdrawn_at(price)
            price_table.append(TokenTableRow(withdrawn, price, curve.integrate(withdrawn)))

    result = IlmResult(
        price_curve=CurveData.from_points(price_points),
        liquidity_curve=liquidity_curve,
        dlmm_bins=CurveData.from_points([Axis(p, h) for p, h in zip(bin_prices, bin_heights)]),
        tokens_table=tokens_table,
        price_table=price_table,
        initial_fdv=initial_price * total_supply,
        final_fdv=max_price * total_supply,
        usdc_in_pool=price_table[-1].usdc_in_pool,
    )
    logger.info(
        f"ILM plan: {'flat' if flat else f'curvature={curvature}'}, pool_supply={pool_supply}, "
        f"bins={len(bin_prices)}, usdc_in_pool={result.usdc_in_pool}"
    )
    return result
