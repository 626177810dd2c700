"""
Tier Resolver

Allocates a quantity delta across a contract's royalty tiers.

The resolver only ever sees an absolute start position and a number of units,
so period mode (start at 0) and lifetime mode (start at units sold before the
period) go through the same code.

Royalty for a slice = units_in_tier x average unit revenue x tier rate,
computed exactly and rounded half-up to the cent per slice.
"""

from collections.abc import Sequence
from fractions import Fraction

from ..models import RoyaltyTier, TierAllocation, TierSlice
from ..money import round_half_up
from ..validators import validate_tier_table


def tier_at(tiers: Sequence[RoyaltyTier], position: int) -> RoyaltyTier:
    """The tier that the unit at ``position`` falls into."""
    for tier in tiers:
        if tier.contains(position):
            return tier
    # Validated tables always end in a terminal tier
    return tiers[-1]


class TierResolver:
    """Walks tiers in ascending order and slices the requested units."""

    def allocate(
        self,
        tiers: Sequence[RoyaltyTier],
        start_position: int,
        units_to_allocate: int,
        revenue: int = 0,
        format: str = "",
    ) -> TierAllocation:
        """
        Allocate ``units_to_allocate`` units starting at ``start_position``.

        Args:
            tiers: Tier table, sorted ascending by min_quantity
            start_position: Units already counted before this delta
            units_to_allocate: Units in this delta
            revenue: Revenue (minor units) earned by the delta's units
            format: Format name, used in error messages

        Returns:
            TierAllocation whose slices cover exactly ``units_to_allocate``
        """
        validate_tier_table(format, tiers)
        if start_position < 0 or units_to_allocate < 0:
            raise ValueError(
                f"start_position and units_to_allocate must be non-negative, "
                f"got: {start_position}, {units_to_allocate}"
            )

        if units_to_allocate == 0:
            return TierAllocation(start_position=start_position)

        unit_revenue = Fraction(revenue, units_to_allocate)
        end_position = start_position + units_to_allocate

        slices = []
        for tier in tiers:
            lower = max(start_position, tier.min_quantity)
            upper = end_position if tier.is_terminal else min(end_position, tier.max_quantity)
            if upper <= lower:
                continue

            units_in_tier = upper - lower
            royalty = round_half_up(units_in_tier * unit_revenue * Fraction(tier.rate))
            slices.append(TierSlice(tier=tier, units_in_tier=units_in_tier, royalty_for_tier=royalty))

        return TierAllocation(start_position=start_position, slices=tuple(slices))


def blended_rate(allocation: TierAllocation) -> Fraction:
    """Average royalty per unit (minor units) across an allocation."""
    if allocation.units == 0:
        return Fraction(0)
    return Fraction(allocation.royalty, allocation.units)
