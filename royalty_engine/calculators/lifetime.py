"""
Lifetime Position Tracker

For lifetime-mode contracts the tier position carries over from every earlier
period. This module resolves that starting position from ledger history and
summarizes where the author stands after the period.
"""

import logging
from datetime import date

from ..exceptions import LifetimeHistoryIncomplete
from ..models import ContractTerms, FormatBreakdown, LifetimeContext, LifetimePosition
from .tiers import tier_at

logger = logging.getLogger(__name__)


class LifetimePositionTracker:
    """Resolves cumulative units and revenue sold before a period."""

    def __init__(self, ledger_repository):
        self.ledger_repository = ledger_repository

    def resolve(self, author_id: str, contract_id: str, format: str, period_start: date) -> LifetimePosition:
        """
        Sum all ledger activity strictly before ``period_start``.

        Raises LifetimeHistoryIncomplete when the history has not been
        backfilled for this contract and format.
        """
        units, revenue = self.ledger_repository.get_lifetime_totals_before(
            author_id, contract_id, format, period_start
        )
        return LifetimePosition(format=format, units_before_period=units, revenue_before_period=revenue)

    def resolve_all(
        self,
        author_id: str,
        terms: ContractTerms,
        period_start: date,
        fail_on_incomplete: bool = False,
        contract_id: str | None = None,
    ) -> dict[str, LifetimePosition]:
        """
        Resolve positions for every tiered format of a lifetime contract.

        ``contract_id`` names the contract whose history is read when it differs
        from the one supplying the tiers (a co-owned title priced by its primary
        author).

        With ``fail_on_incomplete`` unset, a format with missing history starts
        at position 0 and is flagged so the statement carries a warning.
        """
        contract_id = contract_id or terms.contract_id
        positions = {}
        for fmt in terms.formats:
            try:
                positions[fmt] = self.resolve(author_id, contract_id, fmt, period_start)
            except LifetimeHistoryIncomplete:
                if fail_on_incomplete:
                    raise
                logger.warning(
                    f"Lifetime history incomplete for contract {contract_id} ({fmt}); "
                    f"tiering from position 0"
                )
                positions[fmt] = LifetimePosition(format=fmt, history_complete=False)
        return positions


class LifetimeContextBuilder:
    """Describes the author's lifetime tier position after the period."""

    def build(
        self,
        terms: ContractTerms,
        breakdowns: list[FormatBreakdown],
        positions: dict[str, LifetimePosition],
    ) -> LifetimeContext | None:
        tiered = [b for b in breakdowns if b.format in terms.tiers_by_format]
        if not terms.is_lifetime_mode or not tiered:
            return None

        sales_before = 0
        sales_after = 0
        leader = None  # (sales_after, format) of the format furthest along
        for breakdown in tiered:
            position = positions.get(breakdown.format)
            before = position.units_before_period if position else 0
            after = before + breakdown.ledger.net_quantity
            sales_before += before
            sales_after += after
            if leader is None or after > leader[0] or (after == leader[0] and breakdown.format < leader[1]):
                leader = (after, breakdown.format)

        leader_after, leader_format = leader
        current = tier_at(terms.tiers_by_format[leader_format], leader_after)
        units_to_next = None if current.is_terminal else current.max_quantity - leader_after

        return LifetimeContext(
            format=leader_format,
            sales_before=sales_before,
            sales_after=sales_after,
            current_tier_rate=current.rate,
            next_tier_threshold=current.max_quantity,
            units_to_next_tier=units_to_next,
        )
