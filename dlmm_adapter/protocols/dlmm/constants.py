"""
DLMM Constants
"""

# Q64.64 fixed point
SCALE_OFFSET = 64
ONE = 1 << SCALE_OFFSET
MAX_U128 = (1 << 128) - 1
MAX_U64 = (1 << 64) - 1
# Exponents at or above 2^19 always underflow to zero in Q64.64
MAX_EXPONENTIAL = 0x80000

# Bin ID bounds
BIN_BOUND = 443636
MIN_BIN_ID = -BIN_BOUND
MAX_BIN_ID = BIN_BOUND

# Bins are stored in groups of 16, keyed by score = bin_id + BIN_BOUND
BIN_GROUP_SHIFT = 4
BIN_GROUP_MASK = 0xF

# Widest range a single position may cover
MAX_BIN_PER_POSITION = 1000

# Basis points
BASIS_POINT_MAX = 10000
BASIS_POINT = 10000

# Strategy weights
DEFAULT_MIN_WEIGHT = 200
DEFAULT_MAX_WEIGHT = 2000

# Fees (rates are expressed in FEE_PRECISION units)
FEE_PRECISION = 1_000_000_000
MAX_FEE_RATE = 100_000_000
VARIABLE_FEE_PRECISION = 100_000_000_000
BASE_FEE_MULTIPLIER = 10

# Decimal context precision for price math
PRICE_PRECISION = 40

# Relative gap between first- and second-pass autofill totals that gets logged
ACTIVE_WEIGHT_EPSILON = "0.000001"
