"""
Exception definitions for the DLMM liquidity engine
"""

from enum import Enum
from typing import Optional
from decimal import Decimal


class ErrorCode(Enum):
    """
    Unified error codes for DLMM calculations

    1xxx - Bin errors
    2xxx - Liquidity errors
    3xxx - Amount errors
    4xxx - Parameter errors
    5xxx - Swap/Aggregator errors
    9xxx - Configuration errors
    """
    # Bin errors
    INVALID_BIN_ID = "1001"
    INVALID_BIN_WIDTH = "1002"

    # Liquidity errors
    INSUFFICIENT_LIQUIDITY = "2001"
    LIQUIDITY_SUPPLY_IS_ZERO = "2002"
    INVALID_DELTA_LIQUIDITY = "2003"

    # Amount errors
    AMOUNT_TOO_SMALL = "3001"

    # Parameter errors
    INVALID_STRATEGY_PARAMS = "4001"
    INVALID_PARAMS = "4002"

    # Swap/Aggregator errors (aggregator transport errors are recoverable)
    SWAP_AMOUNT_ERROR = "5001"
    AGGREGATOR_ERROR = "5002"
    AGGREGATOR_TIMEOUT = "5003"
    AGGREGATOR_NO_ROUTE = "5004"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class DlmmError(Exception):
    """
    Base exception for all DLMM engine errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class InvalidBinId(DlmmError):
    """
    Bin id outside the representable range - not recoverable

    Raised when:
    - bin_id is outside [-BIN_BOUND, BIN_BOUND]
    - A storage score does not map back to a valid bin
    """

    def __init__(self, message: str, bin_id: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_BIN_ID,
            details={"bin_id": bin_id},
        )
        self.bin_id = bin_id

    @classmethod
    def out_of_bounds(cls, bin_id: int, bound: int) -> "InvalidBinId":
        return cls(f"Bin id {bin_id} is outside [-{bound}, {bound}]", bin_id=bin_id)


class InvalidBinWidth(DlmmError):
    """Position range wider than a single position may hold"""

    def __init__(self, message: str, width: Optional[int] = None, max_width: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_BIN_WIDTH,
            details={"width": width, "max_width": max_width},
        )
        self.width = width
        self.max_width = max_width

    @classmethod
    def too_wide(cls, width: int, max_width: int) -> "InvalidBinWidth":
        return cls(
            f"Bin range width {width} exceeds maximum of {max_width} bins per position",
            width=width,
            max_width=max_width,
        )


class InsufficientLiquidity(DlmmError):
    """
    Nothing to withdraw on the requested side - not recoverable

    Raised when:
    - The selected bins hold zero of the requested token
    """

    def __init__(self, message: str, requested: Optional[int] = None, available: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.INSUFFICIENT_LIQUIDITY,
            details={"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available

    @classmethod
    def no_liquidity(cls, side: str, requested: int) -> "InsufficientLiquidity":
        return cls(
            f"No {side} liquidity available to withdraw {requested}",
            requested=requested,
            available=0,
        )


class AmountTooSmall(DlmmError):
    """A computed per-bin amount lies strictly between 0 and 1"""

    def __init__(self, message: str, amount: Optional[Decimal] = None):
        super().__init__(
            message,
            ErrorCode.AMOUNT_TOO_SMALL,
            details={"amount": str(amount) if amount is not None else None},
        )
        self.amount = amount

    @classmethod
    def below_one(cls, amount: Decimal) -> "AmountTooSmall":
        return cls(f"Amount {amount} is too small to be represented", amount=amount)


class InvalidDeltaLiquidity(DlmmError):
    """Requested liquidity delta exceeds the bin's liquidity supply"""

    def __init__(self, message: str, delta: Optional[int] = None, supply: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_DELTA_LIQUIDITY,
            details={"delta": delta, "supply": supply},
        )
        self.delta = delta
        self.supply = supply

    @classmethod
    def exceeds_supply(cls, delta: int, supply: int) -> "InvalidDeltaLiquidity":
        return cls(
            f"Liquidity delta {delta} exceeds supply {supply}",
            delta=delta,
            supply=supply,
        )


class LiquiditySupplyIsZero(DlmmError):
    """Bin has no liquidity shares to convert amounts against"""

    def __init__(self, message: str = "Liquidity supply is zero"):
        super().__init__(message, ErrorCode.LIQUIDITY_SUPPLY_IS_ZERO)


class InvalidStrategyParams(DlmmError):
    """
    Weight strategy cannot produce a distribution - not recoverable

    Raised when:
    - Total weight on a side that must receive tokens is zero or negative
    - Strategy type is unknown
    """

    def __init__(self, message: str, strategy: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_STRATEGY_PARAMS,
            details={"strategy": strategy},
        )
        self.strategy = strategy

    @classmethod
    def zero_total_weight(cls, side: str) -> "InvalidStrategyParams":
        return cls(f"Invalid parameters: total weight on {side} side must be positive")

    @classmethod
    def unknown_strategy(cls, strategy) -> "InvalidStrategyParams":
        return cls(f"Unknown strategy type: {strategy}", strategy=str(strategy))


class InvalidParams(DlmmError):
    """Caller-supplied arguments are inconsistent"""

    def __init__(self, message: str, param: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_PARAMS,
            details={"param": param},
        )
        self.param = param

    @classmethod
    def invalid(cls, param: str, reason: str) -> "InvalidParams":
        return cls(f"Invalid parameter '{param}': {reason}", param=param)


class SwapAmountError(DlmmError):
    """
    Swap planning failed - not recoverable

    Raised when:
    - A swap amount rounds below the minimum unit
    - Deposit planning produced no liquidity info
    - Withdrawal asks for more than is available
    """

    def __init__(self, message: str, amount: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.SWAP_AMOUNT_ERROR,
            details={"amount": amount},
        )
        self.amount = amount

    @classmethod
    def below_minimum(cls, amount) -> "SwapAmountError":
        return cls(f"Swap amount {amount} is below the minimum of 1", amount=str(amount))

    @classmethod
    def no_liquidity_info(cls) -> "SwapAmountError":
        return cls("Failed to calculate liquidity info for deposit")

    @classmethod
    def exceeds_available(cls, expected, available) -> "SwapAmountError":
        return cls(
            f"Expected receive amount {expected} exceeds available amount {available}",
            amount=str(expected),
        )


class AggregatorError(DlmmError):
    """
    Quote provider errors

    Transport failures (timeouts, 5xx, rate limits) are recoverable so a caller
    may retry; a missing route or a malformed response is not.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.AGGREGATOR_ERROR,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def no_route(cls, from_token: str, to_token: str, amount: int) -> "AggregatorError":
        return cls(
            f"No route found from {from_token} to {to_token} for amount {amount}",
            ErrorCode.AGGREGATOR_NO_ROUTE,
        )

    @classmethod
    def api_error(cls, reason: str, endpoint: Optional[str] = None) -> "AggregatorError":
        return cls(f"Aggregator API error: {reason}", endpoint=endpoint)

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float, error: Exception = None) -> "AggregatorError":
        return cls(
            f"Aggregator request timed out after {timeout_seconds}s",
            ErrorCode.AGGREGATOR_TIMEOUT,
            recoverable=True,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def http_error(cls, status_code: int, body: str, endpoint: Optional[str] = None) -> "AggregatorError":
        # Rate limits and server errors may clear on retry
        recoverable = status_code == 429 or status_code >= 500
        return cls(
            f"Aggregator HTTP {status_code}: {body[:200]}",
            recoverable=recoverable,
            endpoint=endpoint,
        )

    @classmethod
    def wrap(cls, error: Exception) -> "AggregatorError":
        return cls(f"Quote provider failed: {error}", original_error=error)


class ConfigurationError(DlmmError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)
