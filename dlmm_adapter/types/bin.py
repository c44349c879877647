"""
Bin type definitions
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, List, Optional


@dataclass(frozen=True)
class BinAmount:
    """
    Token amounts held by (or allocated to) a single bin

    Attributes:
        bin_id: Signed bin index
        amount_a: Token A amount in base units
        amount_b: Token B amount in base units
        price_per_lamport: Price of A in B in base units, (1 + bin_step/10000)^bin_id
        liquidity: Constant-sum liquidity, q_price * amount_a + amount_b * 2^64
    """
    bin_id: int
    amount_a: int
    amount_b: int
    price_per_lamport: Decimal
    liquidity: int = 0

    def with_amounts(self, amount_a: int, amount_b: int, liquidity: Optional[int] = None) -> "BinAmount":
        """Copy with new amounts (liquidity kept unless given)"""
        if liquidity is None:
            return replace(self, amount_a=amount_a, amount_b=amount_b)
        return replace(self, amount_a=amount_a, amount_b=amount_b, liquidity=liquidity)

    def to_dict(self) -> Dict[str, object]:
        return {
            "bin_id": self.bin_id,
            "amount_a": str(self.amount_a),
            "amount_b": str(self.amount_b),
            "liquidity": str(self.liquidity),
            "price_per_lamport": str(self.price_per_lamport),
        }


@dataclass
class BinLiquidityInfo:
    """
    Per-bin allocation for a deposit or a withdrawal

    Bins are ordered by ascending bin_id. Totals are derived from the bins,
    so they always equal the per-bin sums, including after replace_bin().
    """
    bins: List[BinAmount] = field(default_factory=list)

    @property
    def amount_a(self) -> int:
        return sum(b.amount_a for b in self.bins)

    @property
    def amount_b(self) -> int:
        return sum(b.amount_b for b in self.bins)

    @property
    def bin_ids(self) -> List[int]:
        return [b.bin_id for b in self.bins]

    @property
    def lower_bin_id(self) -> Optional[int]:
        return self.bins[0].bin_id if self.bins else None

    @property
    def upper_bin_id(self) -> Optional[int]:
        return self.bins[-1].bin_id if self.bins else None

    @property
    def is_empty(self) -> bool:
        return not self.bins

    def get_bin(self, bin_id: int) -> Optional[BinAmount]:
        for b in self.bins:
            if b.bin_id == bin_id:
                return b
        return None

    def replace_bin(self, new_bin: BinAmount) -> None:
        """Swap in an updated bin with the same bin_id"""
        for i, b in enumerate(self.bins):
            if b.bin_id == new_bin.bin_id:
                self.bins[i] = new_bin
                return
        raise KeyError(f"Bin {new_bin.bin_id} not in liquidity info")

    def to_dict(self) -> dict:
        return {
            "bins": [b.to_dict() for b in self.bins],
            "amount_a": str(self.amount_a),
            "amount_b": str(self.amount_b),
        }

    def __str__(self) -> str:
        if not self.bins:
            return "BinLiquidityInfo(empty)"
        return (
            f"BinLiquidityInfo(bins={self.lower_bin_id}..{self.upper_bin_id}, "
            f"amount_a={self.amount_a}, amount_b={self.amount_b})"
        )
