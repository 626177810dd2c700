"""
Output Builder

Serializes engine results for downstream renderers (PDF, email, persistence)
and the API surfaces.

The StatementCalculations field names are a wire contract. Changing their
shape requires bumping WIRE_VERSION.
"""

from .models import (
    BatchResult,
    ComposedStatement,
    FormatBreakdown,
    LifetimeContext,
    Outcome,
    PayeeIdentity,
    SplitCalculation,
    StatementCalculations,
    TierAllocation,
)
from .money import to_money

WIRE_VERSION = 1


def _rate(value) -> float:
    return float(value)


class OutputBuilder:
    """Builds plain-dict output from engine results."""

    def build_calculations(self, calc: StatementCalculations) -> dict:
        """The wire form of one statement's calculations."""
        recoupment = calc.advance_recoupment
        output = {
            "version": WIRE_VERSION,
            "period": {
                "startDate": calc.period.start_date.isoformat(),
                "endDate": calc.period.end_date.isoformat(),
            },
            "formatBreakdowns": [self._build_breakdown(b) for b in calc.format_breakdowns],
            "returnsDeduction": to_money(calc.returns_deduction),
            "grossRoyalty": to_money(calc.gross_royalty),
            "advanceRecoupment": {
                "originalAdvance": to_money(recoupment.original_advance),
                "previouslyRecouped": to_money(recoupment.previously_recouped),
                "thisPeriodsRecoupment": to_money(recoupment.this_periods_recoupment),
                "remainingAdvance": to_money(recoupment.remaining_advance),
            },
            "netPayable": to_money(calc.net_payable),
        }
        # Optional sections are present only on the statements they describe
        if calc.split_calculation is not None:
            output["splitCalculation"] = self._build_split(calc.split_calculation)
        if calc.lifetime_context is not None:
            output["lifetimeContext"] = self._build_lifetime(calc.lifetime_context)
        return output

    def _build_breakdown(self, breakdown: FormatBreakdown) -> dict:
        ledger = breakdown.ledger
        return {
            "format": breakdown.format,
            "quantitySold": ledger.quantity_sold,
            "quantityReturned": ledger.quantity_returned,
            "netQuantity": ledger.raw_net_quantity,
            "grossRevenue": to_money(ledger.gross_revenue),
            "returnsAmount": to_money(ledger.returns_amount),
            "tierAllocation": self._build_allocation(breakdown.allocation),
            "formatRoyalty": to_money(breakdown.format_royalty),
            "returnsDeduction": to_money(breakdown.returns_deduction.amount),
        }

    def _build_allocation(self, allocation: TierAllocation) -> list:
        return [
            {
                "minQuantity": s.tier.min_quantity,
                "maxQuantity": s.tier.max_quantity,
                "rate": _rate(s.tier.rate),
                "unitsInTier": s.units_in_tier,
                "royaltyForTier": to_money(s.royalty_for_tier),
            }
            for s in allocation.slices
        ]

    def _build_split(self, split: SplitCalculation) -> dict:
        return {
            "titleTotalRoyalty": to_money(split.title_total_royalty),
            "ownershipPercentage": _rate(split.ownership_percentage),
            "authorShare": to_money(split.author_share),
        }

    def _build_lifetime(self, context: LifetimeContext) -> dict:
        return {
            "format": context.format,
            "salesBefore": context.sales_before,
            "salesAfter": context.sales_after,
            "currentTierRate": _rate(context.current_tier_rate),
            "nextTierThreshold": context.next_tier_threshold,
            "unitsToNextTier": context.units_to_next_tier,
        }

    def _build_payee(self, payee: PayeeIdentity | None) -> dict | None:
        if payee is None:
            return None
        return {"id": payee.id, "name": payee.name, "email": payee.email, "address": payee.address}

    def build_statement(self, statement: ComposedStatement) -> dict:
        primary = statement.primary_warning
        return {
            "authorId": statement.author_id,
            "contractId": statement.contract_id,
            "payee": self._build_payee(statement.payee),
            "calculations": self.build_calculations(statement.calculations),
            "warnings": [{"type": w.type.value, "message": w.message} for w in statement.warnings],
            "primaryWarning": primary.type.value if primary else None,
            "recoupmentDelta": to_money(statement.recoupment_delta),
        }

    def build_outcome(self, outcome: Outcome) -> dict:
        output = {
            "authorId": outcome.author_id,
            "status": outcome.status.value,
        }
        if outcome.statement is not None:
            output["statement"] = self.build_statement(outcome.statement)
        if outcome.statement_id is not None:
            output["statementId"] = outcome.statement_id
        if outcome.error is not None:
            output["error"] = {"code": outcome.error.code, "message": outcome.error.message}
        return output

    def build_batch(self, result: BatchResult) -> dict:
        """Generation summary: every author, succeeded or not."""
        return {
            "period": {
                "startDate": result.period.start_date.isoformat(),
                "endDate": result.period.end_date.isoformat(),
            },
            "preview": result.preview,
            "succeeded": result.succeeded,
            "failed": result.failed,
            "cancelled": result.cancelled,
            "durationMs": result.duration_ms,
            "outcomes": [self.build_outcome(o) for o in result.outcomes],
        }

    # =========================================================================
    # PREVIEW
    # =========================================================================

    def build_preview_row(self, outcome: Outcome) -> dict:
        """One author's preview line. Failed authors show zeros and the error."""
        if outcome.statement is None:
            return {
                "authorId": outcome.author_id,
                "authorName": outcome.author_id,
                "totalSales": 0,
                "totalReturns": 0,
                "royaltyEarned": 0.0,
                "advanceRecouped": 0.0,
                "netPayable": 0.0,
                "warnings": [],
                "error": {"code": outcome.error.code, "message": outcome.error.message} if outcome.error else None,
            }

        statement = outcome.statement
        calc = statement.calculations
        return {
            "authorId": outcome.author_id,
            "authorName": statement.payee.name if statement.payee else outcome.author_id,
            "totalSales": calc.total_sold,
            "totalReturns": calc.total_returned,
            "royaltyEarned": to_money(calc.gross_royalty),
            "advanceRecouped": to_money(calc.advance_recoupment.this_periods_recoupment),
            "netPayable": to_money(calc.net_payable),
            "warnings": [{"type": w.type.value, "message": w.message} for w in statement.warnings],
            "error": None,
        }

    def build_preview(self, result: BatchResult) -> dict:
        rows = [self.build_preview_row(o) for o in result.outcomes]
        composed = [o.statement for o in result.outcomes if o.statement is not None]
        totals = {
            "totalSales": sum(s.calculations.total_sold for s in composed),
            "totalReturns": sum(s.calculations.total_returned for s in composed),
            "royaltyEarned": to_money(sum(s.calculations.gross_royalty for s in composed)),
            "advanceRecouped": to_money(
                sum(s.calculations.advance_recoupment.this_periods_recoupment for s in composed)
            ),
            "netPayable": to_money(sum(s.calculations.net_payable for s in composed)),
            "authorCount": len(rows),
            "warningCount": sum(len(s.warnings) for s in composed),
        }
        return {
            "calculations": rows,
            "totals": totals,
            "succeeded": result.succeeded,
            "failed": result.failed,
            "cancelled": result.cancelled,
        }
