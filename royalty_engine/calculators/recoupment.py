"""
Advance Recoupment Tracker

Pays the contract advance back out of earned royalties. The engine only
reports this period's recoupment; the caller persists it.
"""

from ..models import RecoupmentHistory, StatementAdvanceRecoupment


class AdvanceRecoupmentTracker:
    """Computes how much of the advance this period's royalty recoups."""

    def __init__(self, recoupment_repository=None):
        self.recoupment_repository = recoupment_repository

    def resolve_history(self, author_id: str, contract_id: str) -> RecoupmentHistory:
        """Amount already recouped by earlier statements for this contract."""
        if self.recoupment_repository is None:
            return RecoupmentHistory()
        previously = self.recoupment_repository.get_previously_recouped(author_id, contract_id)
        return RecoupmentHistory(previously_recouped=previously)

    def compute(
        self, advance_amount: int, previously_recouped: int, gross_royalty: int
    ) -> StatementAdvanceRecoupment:
        """
        Recoup up to the remaining advance, never more than the royalty earned.

        this_period = min(gross_royalty, advance - previously_recouped), floored at 0
        remaining   = advance - previously_recouped - this_period

        Once the remaining advance reaches 0 every later period recoups 0.
        """
        outstanding = max(0, advance_amount - previously_recouped)
        this_period = max(0, min(gross_royalty, outstanding))

        return StatementAdvanceRecoupment(
            original_advance=advance_amount,
            previously_recouped=previously_recouped,
            this_periods_recoupment=this_period,
            remaining_advance=outstanding - this_period,
        )
