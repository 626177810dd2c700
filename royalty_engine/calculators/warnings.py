"""
Statement Warnings

Non-fatal annotations on a composed statement. Several conditions can hold
at once; all of them are reported, in this order:

    1. lifetime_history_incomplete
    2. negative_net
    3. zero_net
    4. no_sales

The first one is the statement's primary warning.
"""

from ..models import ProcessingContext, StatementWarning, WarningType
from ..money import to_money

WARNING_PRECEDENCE = (
    WarningType.LIFETIME_HISTORY_INCOMPLETE,
    WarningType.NEGATIVE_NET,
    WarningType.ZERO_NET,
    WarningType.NO_SALES,
)


class WarningDeriver:
    """Derives warnings from a fully calculated context."""

    def derive(self, ctx: ProcessingContext) -> tuple[StatementWarning, ...]:
        checks = {
            WarningType.LIFETIME_HISTORY_INCOMPLETE: self._lifetime_history_incomplete,
            WarningType.NEGATIVE_NET: self._negative_net,
            WarningType.ZERO_NET: self._zero_net,
            WarningType.NO_SALES: self._no_sales,
        }

        warnings = []
        for warning_type in WARNING_PRECEDENCE:
            message = checks[warning_type](ctx)
            if message:
                warnings.append(StatementWarning(type=warning_type, message=message))
        return tuple(warnings)

    def _lifetime_history_incomplete(self, ctx: ProcessingContext) -> str | None:
        missing = sorted(
            fmt for fmt, position in ctx.inputs.lifetime_positions.items() if not position.history_complete
        )
        if not missing:
            return None
        return (
            f"Lifetime sales history is incomplete for {', '.join(missing)}; "
            f"tiers were applied from zero and may understate the royalty rate"
        )

    def _negative_net(self, ctx: ProcessingContext) -> str | None:
        over = [b for b in ctx.breakdowns if b.over_returned]
        if not over:
            return None
        details = ", ".join(
            f"{b.format} ({b.ledger.quantity_returned} returned vs {b.ledger.quantity_sold} sold)" for b in over
        )
        return f"Returns exceed sales: {details}. Returns deduction capped at royalty earned"

    def _zero_net(self, ctx: ProcessingContext) -> str | None:
        recouped = ctx.recoupment.this_periods_recoupment
        if ctx.net_payable != 0 or recouped <= 0:
            return None
        return (
            f"Advance recoupment of ${to_money(recouped):,.2f} consumes the entire royalty; "
            f"nothing is payable this period"
        )

    def _no_sales(self, ctx: ProcessingContext) -> str | None:
        total_sold = sum(ledger.quantity_sold for ledger in ctx.ledgers.values())
        total_returned = sum(ledger.quantity_returned for ledger in ctx.ledgers.values())
        prior_units = sum(p.units_before_period for p in ctx.inputs.lifetime_positions.values())
        if total_sold or total_returned or prior_units:
            return None
        return "No sales recorded for this period"
