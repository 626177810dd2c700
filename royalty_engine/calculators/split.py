"""
Split Allocator

Scales a co-owned title's royalty pool down to one owner's share. Shares are
floored to the cent, so rounding loss stays with the title, never with the
owners.
"""

from collections.abc import Iterable
from decimal import Decimal
from fractions import Fraction

from ..models import OwnerShare, SplitCalculation


class SplitAllocator:
    """Applies ownership percentages to title-level royalty."""

    def apply(self, title_total_royalty: int, ownership_percentage: Decimal) -> SplitCalculation:
        """authorShare = floor(title_total x ownership / 100)"""
        if not (Decimal("0") < ownership_percentage <= Decimal("100")):
            raise ValueError(f"ownership_percentage must be in (0, 100], got: {ownership_percentage}")

        total = max(0, title_total_royalty)
        share = (total * Fraction(ownership_percentage)) // 100

        return SplitCalculation(
            title_total_royalty=total,
            ownership_percentage=ownership_percentage,
            author_share=int(share),
        )

    def allocate_title(
        self, title_total_royalty: int, owners: Iterable[tuple[str, Decimal]]
    ) -> tuple[OwnerShare, ...]:
        """Every co-owner's share of the title pool, in the order given."""
        return tuple(
            OwnerShare(
                owner_id=owner_id,
                ownership_percentage=percentage,
                share=self.apply(title_total_royalty, percentage).author_share,
            )
            for owner_id, percentage in owners
        )
