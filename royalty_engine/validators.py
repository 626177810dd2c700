"""
Input Validation for the Royalty Statement Engine

Validates contract terms and ledger snapshots before any calculation runs.
Tier table problems raise MalformedTierTable; every other constraint
violation raises InvalidStatementInput. Both are ValueErrors.
"""

from decimal import Decimal

from .exceptions import InvalidStatementInput, MalformedTierTable
from .models import (
    LIFETIME_MODE,
    PERIOD_MODE,
    ContractTerms,
    PeriodLedger,
    RecoupmentHistory,
    RoyaltyTier,
    StatementInputs,
)


def validate_tier_table(format: str, tiers) -> None:
    """
    Check that a format's tiers are contiguous half-open ranges starting at 0,
    sorted ascending, with exactly one terminal tier at the end.
    """
    if not tiers:
        raise MalformedTierTable(format, "no tiers defined")

    if tiers[0].min_quantity != 0:
        raise MalformedTierTable(format, f"first tier starts at {tiers[0].min_quantity}, expected 0")

    terminal_count = sum(1 for tier in tiers if tier.is_terminal)
    if terminal_count == 0:
        raise MalformedTierTable(format, "missing terminal tier (max_quantity = null)")
    if terminal_count > 1:
        raise MalformedTierTable(format, f"{terminal_count} terminal tiers, expected exactly one")
    if not tiers[-1].is_terminal:
        raise MalformedTierTable(format, "terminal tier must be the last tier")

    previous: RoyaltyTier | None = None
    for i, tier in enumerate(tiers):
        if not (Decimal("0") <= tier.rate <= Decimal("1")):
            raise MalformedTierTable(format, f"tier {i} rate must be between 0 and 1, got: {tier.rate}")
        if tier.max_quantity is not None and tier.max_quantity <= tier.min_quantity:
            raise MalformedTierTable(
                format, f"tier {i} is empty ({tier.min_quantity}-{tier.max_quantity})"
            )
        if previous is not None:
            if tier.min_quantity > previous.max_quantity:
                raise MalformedTierTable(
                    format, f"gap between {previous.max_quantity} and {tier.min_quantity}"
                )
            if tier.min_quantity < previous.max_quantity:
                raise MalformedTierTable(
                    format, f"tier {i} overlaps previous tier at {tier.min_quantity}"
                )
        previous = tier


class InputValidator:
    """Validates statement inputs according to contract rules."""

    def validate(self, inputs: StatementInputs) -> None:
        """
        Run all validations. Raises InvalidStatementInput if any check fails.
        """
        self.validate_terms(inputs.terms)
        if inputs.title_terms is not None:
            self.validate_terms(inputs.title_terms)
        for ledger in inputs.ledgers.values():
            self._validate_ledger(ledger)
        self._validate_recoupment(inputs.recoupment, inputs.terms)

    def validate_terms(self, terms: ContractTerms) -> None:
        if terms.advance_amount < 0:
            raise InvalidStatementInput(f"advance_amount cannot be negative, got: {terms.advance_amount}")

        if terms.tier_calculation_mode not in (PERIOD_MODE, LIFETIME_MODE):
            raise InvalidStatementInput(
                f"Invalid tier_calculation_mode: {terms.tier_calculation_mode}. "
                f"Must be '{PERIOD_MODE}' or '{LIFETIME_MODE}'"
            )

        if terms.split_ownership is not None:
            if not (Decimal("0") < terms.split_ownership <= Decimal("100")):
                raise InvalidStatementInput(
                    f"split_ownership must be in (0, 100], got: {terms.split_ownership}"
                )

        for fmt in terms.formats:
            validate_tier_table(fmt, terms.tiers_by_format[fmt])

    def _validate_ledger(self, ledger: PeriodLedger) -> None:
        for name in ("quantity_sold", "quantity_returned", "gross_revenue", "returns_amount"):
            value = getattr(ledger, name)
            if value < 0:
                raise InvalidStatementInput(f"{name} cannot be negative for {ledger.format}, got: {value}")

    def _validate_recoupment(self, history: RecoupmentHistory, terms: ContractTerms) -> None:
        if history.previously_recouped < 0:
            raise InvalidStatementInput(
                f"previously_recouped cannot be negative, got: {history.previously_recouped}"
            )
        if history.previously_recouped > terms.advance_amount:
            raise InvalidStatementInput(
                f"previously_recouped ({history.previously_recouped}) cannot exceed "
                f"advance_amount ({terms.advance_amount})"
            )
