"""
Unit Tests for Tier Resolver

Tests verify tier slicing, per-slice rounding and tier table validation.
"""

from decimal import Decimal

import pytest

from royalty_engine.calculators.tiers import TierResolver, blended_rate, tier_at
from royalty_engine.exceptions import MalformedTierTable
from royalty_engine.models import RoyaltyTier


def _tiers(*rows):
    return tuple(RoyaltyTier(lo, hi, Decimal(str(rate))) for lo, hi, rate in rows)


STANDARD = _tiers((0, 1000, "0.10"), (1000, None, "0.15"))


class TestTierAllocation:
    """Test slicing a quantity delta across tiers."""

    @pytest.fixture
    def resolver(self):
        return TierResolver()

    def test_units_split_across_boundary(self, resolver):
        """1200 units at $10 → 1000 @ 10% + 200 @ 15% = $1,300."""
        result = resolver.allocate(STANDARD, 0, 1200, revenue=1_200_000)

        assert [s.units_in_tier for s in result.slices] == [1000, 200]
        assert [s.royalty_for_tier for s in result.slices] == [100_000, 30_000]
        assert result.royalty == 130_000
        assert result.units == 1200

    def test_all_units_in_first_tier(self, resolver):
        result = resolver.allocate(STANDARD, 0, 500, revenue=500_000)

        assert len(result.slices) == 1
        assert result.slices[0].tier == STANDARD[0]
        assert result.royalty == 50_000

    def test_boundary_is_half_open(self, resolver):
        """Exactly 1000 units stay in the first tier."""
        result = resolver.allocate(STANDARD, 0, 1000, revenue=1_000_000)

        assert len(result.slices) == 1
        assert result.slices[0].units_in_tier == 1000

    def test_lifetime_start_position_crosses_boundary(self, resolver):
        """900 units sold before, 200 now → 100 @ 10% + 100 @ 15%."""
        result = resolver.allocate(STANDARD, 900, 200, revenue=200_000)

        assert [s.units_in_tier for s in result.slices] == [100, 100]
        assert result.royalty == 10_000 + 15_000
        assert result.start_position == 900
        assert result.end_position == 1100

    def test_start_beyond_last_boundary_uses_terminal_rate(self, resolver):
        result = resolver.allocate(STANDARD, 5000, 10, revenue=10_000)

        assert len(result.slices) == 1
        assert result.slices[0].tier.is_terminal
        assert result.royalty == 1_500

    def test_zero_units_is_empty_allocation(self, resolver):
        result = resolver.allocate(STANDARD, 250, 0, revenue=0)

        assert result.slices == ()
        assert result.royalty == 0
        assert result.start_position == 250

    def test_three_tiers(self, resolver):
        tiers = _tiers((0, 100, "0.05"), (100, 200, "0.10"), (200, None, "0.20"))
        result = resolver.allocate(tiers, 50, 300, revenue=300_000)

        assert [s.units_in_tier for s in result.slices] == [50, 100, 150]
        assert [s.royalty_for_tier for s in result.slices] == [2_500, 10_000, 30_000]

    def test_negative_units_rejected(self, resolver):
        with pytest.raises(ValueError):
            resolver.allocate(STANDARD, 0, -1, revenue=0)


class TestTierRounding:
    """Each slice is rounded half-up to the cent on its own."""

    @pytest.fixture
    def resolver(self):
        return TierResolver()

    def test_half_cent_rounds_up(self, resolver):
        """1 unit at $0.10 × 5% = 0.5¢ → 1¢ (banker's rounding would give 0)."""
        tiers = _tiers((0, None, "0.05"))
        result = resolver.allocate(tiers, 0, 1, revenue=10)

        assert result.royalty == 1

    def test_rounding_happens_per_slice(self, resolver):
        """Two slices of 0.5¢ each round to 1¢ each, not 1¢ overall."""
        tiers = _tiers((0, 1, "0.05"), (1, None, "0.05"))
        result = resolver.allocate(tiers, 0, 2, revenue=20)

        assert [s.royalty_for_tier for s in result.slices] == [1, 1]
        assert result.royalty == 2

    def test_uneven_unit_price_is_exact(self, resolver):
        """3 units for $10.00 at 7.5%: slices use the exact average price."""
        tiers = _tiers((0, None, "0.075"))
        result = resolver.allocate(tiers, 0, 3, revenue=1_000)

        assert result.royalty == 75

    def test_same_inputs_are_reproducible(self, resolver):
        first = resolver.allocate(STANDARD, 333, 4_321, revenue=7_654_321)
        second = resolver.allocate(STANDARD, 333, 4_321, revenue=7_654_321)

        assert first == second


class TestTierCoverage:
    """Allocations cover exactly the requested units."""

    @pytest.mark.parametrize("start", [0, 1, 999, 1000, 1001, 25_000])
    @pytest.mark.parametrize("units", [1, 7, 999, 1000, 1001, 3_333])
    def test_units_and_royalty_add_up(self, start, units):
        revenue = units * 1_299  # $12.99 each
        result = TierResolver().allocate(STANDARD, start, units, revenue=revenue)

        assert sum(s.units_in_tier for s in result.slices) == units

        exact = sum(s.units_in_tier * 1_299 * s.tier.rate for s in result.slices)
        assert abs(result.royalty - exact) <= 1

    def test_slices_do_not_overlap(self):
        tiers = _tiers((0, 10, "0.1"), (10, 20, "0.2"), (20, 30, "0.3"), (30, None, "0.4"))
        result = TierResolver().allocate(tiers, 5, 40, revenue=40_000)

        position = 5
        for s in result.slices:
            assert s.tier.contains(position)
            position += s.units_in_tier
        assert position == 45


class TestTierTableValidation:
    """Malformed tables are fatal."""

    @pytest.fixture
    def resolver(self):
        return TierResolver()

    def test_gap_rejected(self, resolver):
        with pytest.raises(MalformedTierTable, match="gap"):
            resolver.allocate(_tiers((0, 100, "0.1"), (200, None, "0.2")), 0, 10, format="ebook")

    def test_overlap_rejected(self, resolver):
        with pytest.raises(MalformedTierTable, match="overlaps"):
            resolver.allocate(_tiers((0, 100, "0.1"), (50, None, "0.2")), 0, 10)

    def test_missing_terminal_rejected(self, resolver):
        with pytest.raises(MalformedTierTable, match="terminal"):
            resolver.allocate(_tiers((0, 100, "0.1")), 0, 10)

    def test_two_terminal_tiers_rejected(self, resolver):
        with pytest.raises(MalformedTierTable):
            resolver.allocate(_tiers((0, None, "0.1"), (100, None, "0.2")), 0, 10)

    def test_first_tier_must_start_at_zero(self, resolver):
        with pytest.raises(MalformedTierTable, match="expected 0"):
            resolver.allocate(_tiers((1, None, "0.1")), 0, 10)

    def test_empty_table_rejected(self, resolver):
        with pytest.raises(MalformedTierTable):
            resolver.allocate((), 0, 10)

    def test_rate_above_one_rejected(self, resolver):
        with pytest.raises(MalformedTierTable, match="rate"):
            resolver.allocate(_tiers((0, None, "1.5")), 0, 10)

    def test_malformed_table_is_a_value_error(self, resolver):
        with pytest.raises(ValueError):
            resolver.allocate(_tiers((0, 100, "0.1")), 0, 10)


class TestTierHelpers:

    def test_tier_at_finds_containing_tier(self):
        assert tier_at(STANDARD, 0) == STANDARD[0]
        assert tier_at(STANDARD, 999) == STANDARD[0]
        assert tier_at(STANDARD, 1000) == STANDARD[1]

    def test_blended_rate(self):
        allocation = TierResolver().allocate(STANDARD, 0, 1200, revenue=1_200_000)
        assert blended_rate(allocation) * 1200 == 130_000

    def test_blended_rate_of_empty_allocation_is_zero(self):
        allocation = TierResolver().allocate(STANDARD, 0, 0)
        assert blended_rate(allocation) == 0
