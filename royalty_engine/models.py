"""
Domain Models for the Royalty Statement Engine

Input snapshots are read-only views handed to the engine by repositories.
Output models are frozen: a composed statement is never mutated, corrections
mean generating a new statement.

Monetary fields are integer minor units (cents). Rates and ownership
percentages are Decimal.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from .money import to_minor_units

PERIOD_MODE = "period"
LIFETIME_MODE = "lifetime"


def parse_date(value) -> date:
    """Accept a date, a datetime or an ISO string ("2025-01-31" or full timestamp)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class RoyaltyTier:
    """A contiguous quantity range [min_quantity, max_quantity) with a royalty rate."""

    min_quantity: int
    max_quantity: int | None  # None = terminal tier
    rate: Decimal

    @property
    def is_terminal(self) -> bool:
        return self.max_quantity is None

    def contains(self, position: int) -> bool:
        if position < self.min_quantity:
            return False
        return self.max_quantity is None or position < self.max_quantity

    @classmethod
    def from_dict(cls, data: dict) -> "RoyaltyTier":
        max_quantity = data.get("max_quantity")
        return cls(
            min_quantity=int(data["min_quantity"]),
            max_quantity=int(max_quantity) if max_quantity is not None else None,
            rate=Decimal(str(data["rate"])),
        )


@dataclass(frozen=True)
class ContractTerms:
    """Royalty terms of one author's contract."""

    contract_id: str
    author_id: str
    tiers_by_format: dict[str, tuple[RoyaltyTier, ...]] = field(default_factory=dict)
    advance_amount: int = 0
    tier_calculation_mode: str = PERIOD_MODE  # 'period' or 'lifetime'
    split_ownership: Decimal | None = None  # percentage in (0, 100], co-owned titles only
    title_id: str | None = None
    is_primary: bool = False  # primary author of a co-owned title

    @property
    def is_lifetime_mode(self) -> bool:
        return self.tier_calculation_mode == LIFETIME_MODE

    @property
    def is_split(self) -> bool:
        return self.split_ownership is not None

    @property
    def formats(self) -> list[str]:
        """Formats with a tier table."""
        return sorted(self.tiers_by_format)

    @classmethod
    def from_dict(cls, data: dict) -> "ContractTerms":
        # Tiers arrive as flat rows tagged with their format, like contract_tiers rows
        grouped: dict[str, list[RoyaltyTier]] = {}
        for row in data.get("tiers", []):
            grouped.setdefault(row["format"], []).append(RoyaltyTier.from_dict(row))
        for fmt, rows in data.get("tiers_by_format", {}).items():
            grouped.setdefault(fmt, []).extend(RoyaltyTier.from_dict(r) for r in rows)

        ownership = data.get("split_ownership", data.get("ownership_percentage"))
        return cls(
            contract_id=str(data["contract_id"]),
            author_id=str(data["author_id"]),
            tiers_by_format={
                fmt: tuple(sorted(rows, key=lambda t: t.min_quantity))
                for fmt, rows in grouped.items()
            },
            advance_amount=to_minor_units(data.get("advance_amount", 0)),
            tier_calculation_mode=data.get("tier_calculation_mode", PERIOD_MODE),
            split_ownership=Decimal(str(ownership)) if ownership is not None else None,
            title_id=data.get("title_id"),
            is_primary=bool(data.get("is_primary", False)),
        )


@dataclass(frozen=True)
class PeriodBounds:
    """Statement period, both ends inclusive."""

    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def from_dict(cls, data: dict) -> "PeriodBounds":
        return cls(
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
        )


@dataclass(frozen=True)
class SaleRecord:
    """A raw sale ledger row."""

    contract_id: str
    format: str
    quantity: int
    amount: int  # minor units
    sale_date: date
    title_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "SaleRecord":
        return cls(
            contract_id=str(data.get("contract_id", "")),
            format=data["format"],
            quantity=int(data["quantity"]),
            amount=to_minor_units(data["amount"]),
            sale_date=parse_date(data["sale_date"]),
            title_id=data.get("title_id"),
        )


@dataclass(frozen=True)
class ReturnRecord:
    """A raw return ledger row. Only approved returns count."""

    contract_id: str
    format: str
    quantity: int
    amount: int  # minor units
    return_date: date
    status: str = "approved"
    title_id: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    @classmethod
    def from_dict(cls, data: dict) -> "ReturnRecord":
        return cls(
            contract_id=str(data.get("contract_id", "")),
            format=data["format"],
            quantity=int(data["quantity"]),
            amount=to_minor_units(data.get("amount", 0)),
            return_date=parse_date(data["return_date"]),
            status=data.get("status", "approved"),
            title_id=data.get("title_id"),
        )


@dataclass(frozen=True)
class PeriodLedger:
    """Per-format sales and approved returns for one period."""

    format: str
    quantity_sold: int = 0
    quantity_returned: int = 0
    gross_revenue: int = 0
    returns_amount: int = 0

    @property
    def raw_net_quantity(self) -> int:
        """Sold minus returned. Negative only in pathological data."""
        return self.quantity_sold - self.quantity_returned

    @property
    def net_quantity(self) -> int:
        return max(0, self.raw_net_quantity)

    @property
    def is_over_returned(self) -> bool:
        return self.quantity_returned > self.quantity_sold


@dataclass(frozen=True)
class LifetimePosition:
    """Cumulative net units and revenue strictly before the period start."""

    format: str
    units_before_period: int = 0
    revenue_before_period: int = 0
    history_complete: bool = True


@dataclass(frozen=True)
class RecoupmentHistory:
    """Advance already recouped by earlier statements for the same contract."""

    previously_recouped: int = 0


@dataclass(frozen=True)
class PayeeIdentity:
    """Who a statement is addressed to, whatever record it came from."""

    id: str
    name: str
    email: str | None = None
    address: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "PayeeIdentity":
        # Contacts carry split name/address fields, legacy authors a single one
        name = data.get("name")
        if not name:
            name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip() or "Unknown"

        address = data.get("address")
        if not address:
            locality = " ".join(
                str(part) for part in (data.get("city"), data.get("state"), data.get("postal_code")) if part
            )
            parts = [data.get("address_line1"), data.get("address_line2"), locality, data.get("country")]
            address = ", ".join(str(part) for part in parts if part) or None

        return cls(
            id=str(data.get("id") or data["author_id"]),
            name=name,
            email=data.get("email"),
            address=address,
        )


@dataclass(frozen=True)
class StatementInputs:
    """Everything the pure calculation needs for one author and period."""

    author_id: str
    period: PeriodBounds
    terms: ContractTerms
    ledgers: dict[str, PeriodLedger]
    recoupment: RecoupmentHistory = field(default_factory=RecoupmentHistory)
    lifetime_positions: dict[str, LifetimePosition] = field(default_factory=dict)
    payee: PayeeIdentity | None = None
    # Co-owned titles are priced once, from the primary author's contract
    title_terms: ContractTerms | None = None
    co_owners: tuple[tuple[str, Decimal], ...] = ()

    @property
    def pricing_terms(self) -> ContractTerms:
        """The contract whose tiers and tier mode price the royalty pool."""
        return self.title_terms or self.terms


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass(frozen=True)
class TierSlice:
    """Units that fell inside one tier and the royalty they earned."""

    tier: RoyaltyTier
    units_in_tier: int
    royalty_for_tier: int


@dataclass(frozen=True)
class TierAllocation:
    """Ordered, non-overlapping tier slices covering a quantity delta."""

    start_position: int = 0
    slices: tuple[TierSlice, ...] = ()

    @property
    def units(self) -> int:
        return sum(s.units_in_tier for s in self.slices)

    @property
    def royalty(self) -> int:
        return sum(s.royalty_for_tier for s in self.slices)

    @property
    def end_position(self) -> int:
        return self.start_position + self.units


@dataclass(frozen=True)
class ReturnsDeduction:
    """Royalty taken back for returned units."""

    amount: int = 0
    uncapped_amount: int = 0

    @property
    def capped(self) -> bool:
        return self.uncapped_amount > self.amount


@dataclass(frozen=True)
class FormatBreakdown:
    """Sales, tier allocation and royalty for one format."""

    format: str
    ledger: PeriodLedger
    allocation: TierAllocation
    format_royalty: int
    returns_deduction: ReturnsDeduction = field(default_factory=ReturnsDeduction)

    @property
    def over_returned(self) -> bool:
        return self.ledger.is_over_returned or self.returns_deduction.capped


@dataclass(frozen=True)
class StatementAdvanceRecoupment:
    """Advance payback for one statement."""

    original_advance: int = 0
    previously_recouped: int = 0
    this_periods_recoupment: int = 0
    remaining_advance: int = 0


@dataclass(frozen=True)
class SplitCalculation:
    """Present only on statements for co-owned titles."""

    title_total_royalty: int
    ownership_percentage: Decimal
    author_share: int


@dataclass(frozen=True)
class OwnerShare:
    """One co-owner's slice of a title royalty pool."""

    owner_id: str
    ownership_percentage: Decimal
    share: int


@dataclass(frozen=True)
class LifetimeContext:
    """Present only on lifetime-mode statements."""

    format: str
    sales_before: int
    sales_after: int
    current_tier_rate: Decimal
    next_tier_threshold: int | None
    units_to_next_tier: int | None


@dataclass(frozen=True)
class StatementCalculations:
    """The immutable financial result of one statement."""

    period: PeriodBounds
    format_breakdowns: tuple[FormatBreakdown, ...]
    returns_deduction: int
    gross_royalty: int
    advance_recoupment: StatementAdvanceRecoupment
    net_payable: int
    split_calculation: SplitCalculation | None = None
    lifetime_context: LifetimeContext | None = None

    @property
    def is_split(self) -> bool:
        return self.split_calculation is not None

    @property
    def is_lifetime(self) -> bool:
        return self.lifetime_context is not None

    @property
    def total_sold(self) -> int:
        return sum(b.ledger.quantity_sold for b in self.format_breakdowns)

    @property
    def total_returned(self) -> int:
        return sum(b.ledger.quantity_returned for b in self.format_breakdowns)

    @property
    def total_net_quantity(self) -> int:
        return sum(b.ledger.net_quantity for b in self.format_breakdowns)


class WarningType(str, Enum):
    """Non-fatal annotations, listed in precedence order."""

    LIFETIME_HISTORY_INCOMPLETE = "lifetime_history_incomplete"
    NEGATIVE_NET = "negative_net"
    ZERO_NET = "zero_net"
    NO_SALES = "no_sales"


@dataclass(frozen=True)
class StatementWarning:
    type: WarningType
    message: str


@dataclass(frozen=True)
class ComposedStatement:
    """A statement ready for the renderers, plus its warnings."""

    author_id: str
    contract_id: str
    calculations: StatementCalculations
    warnings: tuple[StatementWarning, ...] = ()
    payee: PayeeIdentity | None = None

    @property
    def primary_warning(self) -> StatementWarning | None:
        return self.warnings[0] if self.warnings else None

    @property
    def recoupment_delta(self) -> int:
        """Amount the caller must add to the contract's recouped total."""
        return self.calculations.advance_recoupment.this_periods_recoupment


class CompositionStage(str, Enum):
    """Where a statement is in the composition pipeline."""

    AGGREGATING = "aggregating"
    TIER_ALLOCATING = "tier_allocating"
    DEDUCTING = "deducting"
    SPLITTING = "splitting"
    RECOUPING = "recouping"
    COMPOSED = "composed"
    FAILED = "failed"


@dataclass
class ProcessingContext:
    """
    Holds all intermediate state while one statement is calculated.
    This is the "bag" that flows through the pipeline.
    """

    # Input (immutable during processing)
    inputs: StatementInputs
    stage: CompositionStage = CompositionStage.AGGREGATING

    # Step results (populated as we go)
    ledgers: dict[str, PeriodLedger] = field(default_factory=dict)
    allocations: dict[str, TierAllocation] = field(default_factory=dict)
    breakdowns: list[FormatBreakdown] = field(default_factory=list)
    gross_royalty: int = 0
    returns_deduction: int = 0
    royalty_after_returns: int = 0
    split: SplitCalculation | None = None
    recoupment: StatementAdvanceRecoupment = field(default_factory=StatementAdvanceRecoupment)
    lifetime_context: LifetimeContext | None = None

    # Final outputs
    net_payable: int = 0
    warnings: tuple[StatementWarning, ...] = ()

    @property
    def terms(self) -> ContractTerms:
        return self.inputs.terms

    @property
    def pricing_terms(self) -> ContractTerms:
        return self.inputs.pricing_terms

    @property
    def recoupable_royalty(self) -> int:
        """Royalty the advance is recouped from: the author's share on split titles."""
        if self.split is not None:
            return self.split.author_share
        return self.royalty_after_returns


# =============================================================================
# BATCH MODELS
# =============================================================================


class OutcomeStatus(str, Enum):
    """Per-author result within a batch."""

    COMPOSED = "composed"
    FAILED = "failed"
    CANCELLED = "cancelled"  # never launched because the batch was cancelled


@dataclass(frozen=True)
class OutcomeError:
    code: str
    message: str


@dataclass(frozen=True)
class Outcome:
    """What happened to one author in a batch."""

    author_id: str
    status: OutcomeStatus
    statement: ComposedStatement | None = None
    error: OutcomeError | None = None
    statement_id: str | None = None  # final mode only

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.COMPOSED

    @classmethod
    def composed(cls, author_id: str, statement: ComposedStatement, statement_id: str | None = None) -> "Outcome":
        return cls(author_id=author_id, status=OutcomeStatus.COMPOSED, statement=statement, statement_id=statement_id)

    @classmethod
    def failed(cls, author_id: str, code: str, message: str) -> "Outcome":
        return cls(author_id=author_id, status=OutcomeStatus.FAILED, error=OutcomeError(code, message))

    @classmethod
    def cancelled(cls, author_id: str) -> "Outcome":
        return cls(
            author_id=author_id,
            status=OutcomeStatus.CANCELLED,
            error=OutcomeError("cancelled", "Batch cancelled before this author was processed"),
        )


@dataclass(frozen=True)
class BatchResult:
    """Complete accounting of a generation run."""

    period: PeriodBounds
    preview: bool
    outcomes: tuple[Outcome, ...]
    duration_ms: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.COMPOSED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.CANCELLED)

    def outcome_for(self, author_id: str) -> Outcome | None:
        for outcome in self.outcomes:
            if outcome.author_id == author_id:
                return outcome
        return None
