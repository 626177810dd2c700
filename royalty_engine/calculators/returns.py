"""
Returns Deduction Calculator

Takes royalty back for approved returns at the blended tier rate that the
period's sold units were credited at.
"""

from fractions import Fraction

from ..models import ReturnsDeduction, TierAllocation
from ..money import round_half_up
from .tiers import blended_rate


class ReturnsDeductionCalculator:
    """Nets returned units against the royalty earned on sold units."""

    def deduct(self, gross_royalty: int, returned_units: int, average_royalty_rate: Fraction) -> ReturnsDeduction:
        """
        deduction = returned_units x average_royalty_rate, rounded half-up,
        capped at gross_royalty.

        ``average_royalty_rate`` is royalty per unit in minor units.
        """
        if returned_units <= 0:
            return ReturnsDeduction()

        uncapped = round_half_up(returned_units * Fraction(average_royalty_rate))
        return ReturnsDeduction(amount=min(uncapped, gross_royalty), uncapped_amount=uncapped)

    def deduct_for_allocation(self, allocation: TierAllocation, returned_units: int) -> ReturnsDeduction:
        """Deduction for one format, using the rate its sold units earned."""
        return self.deduct(allocation.royalty, returned_units, blended_rate(allocation))
