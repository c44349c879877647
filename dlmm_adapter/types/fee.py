"""
Fee parameter type definitions
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BinStepConfig:
    """
    Fee configuration attached to a bin step

    Attributes:
        bin_step: Bin step in basis points
        base_factor: Multiplier for the base fee
        filter_period: Seconds before volatility reference updates
        decay_period: Seconds before volatility reference resets
        reduction_factor: Volatility decay, in basis points
        variable_fee_control: Scale of the volatility-driven fee
        max_volatility_accumulator: Cap on the accumulator
        protocol_fee_rate: Protocol share of fees, in basis points
    """
    bin_step: int
    base_factor: int
    filter_period: int = 0
    decay_period: int = 0
    reduction_factor: int = 0
    variable_fee_control: int = 0
    max_volatility_accumulator: int = 0
    protocol_fee_rate: int = 0


@dataclass(frozen=True)
class VariableParameters:
    """Pool volatility state that drives the variable fee"""
    bin_step_config: BinStepConfig
    volatility_accumulator: int = 0
    volatility_reference: int = 0
    index_reference: int = 0
    last_update_timestamp: int = 0


@dataclass(frozen=True)
class FeeRate:
    """Fee rates in FEE_PRECISION (1e9) units"""
    base_fee_rate: int
    var_fee_rate: int
    total_fee_rate: int = field(default=0)
