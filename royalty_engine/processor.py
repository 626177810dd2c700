"""
Statement Processor - Main Orchestrator

StatementCalculator is the pure pipeline: snapshot inputs in, immutable
StatementCalculations out. StatementComposer reads the snapshots through the
repositories and hands them to the calculator.
"""

import logging

from .calculators import (
    AdvanceRecoupmentTracker,
    LifetimeContextBuilder,
    LifetimePositionTracker,
    ReturnsDeductionCalculator,
    SplitAllocator,
    TierResolver,
    WarningDeriver,
)
from .config import TenantSettings
from .exceptions import InvalidStatementInput, RoyaltyEngineError
from .models import (
    ComposedStatement,
    CompositionStage,
    FormatBreakdown,
    PeriodBounds,
    PeriodLedger,
    ProcessingContext,
    SplitCalculation,
    StatementCalculations,
    StatementInputs,
    TierAllocation,
)
from .repositories import Repositories
from .validators import InputValidator

logger = logging.getLogger(__name__)


class StatementCalculator:
    """
    Pure calculation pipeline for one author and period.

    Stages run in a fixed order:
    1. Validate Input
    2. Aggregating       - one ledger per tiered or active format
    3. TierAllocating    - sold units across tiers from the mode's start position
    4. Deducting         - returns taken back at the blended tier rate
    5. Splitting         - author's share of a co-owned title (split contracts only)
    6. Recouping         - advance recouped from the author's own royalty
    7. Lifetime context, net payable and warnings
    """

    def __init__(self):
        self.validator = InputValidator()
        self.tier_resolver = TierResolver()
        self.returns_calculator = ReturnsDeductionCalculator()
        self.split_allocator = SplitAllocator()
        self.recoupment_tracker = AdvanceRecoupmentTracker()
        self.lifetime_builder = LifetimeContextBuilder()
        self.warning_deriver = WarningDeriver()

    def calculate(self, inputs: StatementInputs) -> ComposedStatement:
        # Step 1: Validate
        self.validator.validate(inputs)

        ctx = ProcessingContext(inputs=inputs)
        try:
            # Step 2: Aggregating
            ctx.stage = CompositionStage.AGGREGATING
            # Every tiered format, plus any untiered format with ledger activity
            formats = sorted(set(ctx.pricing_terms.formats) | set(inputs.ledgers))
            ctx.ledgers = {fmt: inputs.ledgers.get(fmt, PeriodLedger(format=fmt)) for fmt in formats}

            # Step 3: Tier allocation
            ctx.stage = CompositionStage.TIER_ALLOCATING
            self._allocate_tiers(ctx)

            # Step 4: Returns deduction
            ctx.stage = CompositionStage.DEDUCTING
            self._deduct_returns(ctx)

            # Step 5: Split (co-owned titles only); must precede recoupment
            ctx.stage = CompositionStage.SPLITTING
            if ctx.terms.is_split:
                ctx.split = self._split(ctx)

            # Step 6: Advance recoupment from the author's own royalty
            ctx.stage = CompositionStage.RECOUPING
            ctx.recoupment = self.recoupment_tracker.compute(
                ctx.terms.advance_amount,
                inputs.recoupment.previously_recouped,
                ctx.recoupable_royalty,
            )
            ctx.net_payable = ctx.recoupable_royalty - ctx.recoupment.this_periods_recoupment

            # Step 7: Lifetime context and warnings
            ctx.lifetime_context = self.lifetime_builder.build(
                ctx.pricing_terms, ctx.breakdowns, inputs.lifetime_positions
            )
            ctx.warnings = self.warning_deriver.derive(ctx)
        except Exception:
            logger.error(f"Statement calculation failed for author {inputs.author_id} at stage {ctx.stage.value}")
            ctx.stage = CompositionStage.FAILED
            raise

        ctx.stage = CompositionStage.COMPOSED
        return self._build(ctx)

    def _allocate_tiers(self, ctx: ProcessingContext) -> None:
        terms = ctx.pricing_terms
        positions = ctx.inputs.lifetime_positions
        for fmt, ledger in ctx.ledgers.items():
            if fmt not in terms.tiers_by_format:
                # Untiered formats are reported but earn nothing
                logger.warning(
                    f"No royalty tiers for format {fmt} on contract {terms.contract_id}; "
                    f"{ledger.quantity_sold} units earn no royalty"
                )
                ctx.allocations[fmt] = TierAllocation()
                continue

            start = 0
            if terms.is_lifetime_mode and fmt in positions:
                start = positions[fmt].units_before_period
            ctx.allocations[fmt] = self.tier_resolver.allocate(
                terms.tiers_by_format[fmt],
                start_position=start,
                units_to_allocate=ledger.quantity_sold,
                revenue=ledger.gross_revenue,
                format=fmt,
            )

    def _split(self, ctx: ProcessingContext) -> SplitCalculation:
        """
        Split the title pool across every co-owner and keep this author's share.
        Without a co-owner list the author's own percentage is applied.
        """
        inputs = ctx.inputs
        owners = inputs.co_owners or ((inputs.author_id, ctx.terms.split_ownership),)
        shares = self.split_allocator.allocate_title(ctx.royalty_after_returns, owners)

        own = next((s for s in shares if s.owner_id == inputs.author_id), None)
        if own is None:
            raise InvalidStatementInput(
                f"Author {inputs.author_id} is not a co-owner of title {ctx.terms.title_id}"
            )
        return SplitCalculation(
            title_total_royalty=max(0, ctx.royalty_after_returns),
            ownership_percentage=own.ownership_percentage,
            author_share=own.share,
        )

    def _deduct_returns(self, ctx: ProcessingContext) -> None:
        for fmt, ledger in ctx.ledgers.items():
            allocation = ctx.allocations[fmt]
            deduction = self.returns_calculator.deduct_for_allocation(allocation, ledger.quantity_returned)
            ctx.breakdowns.append(
                FormatBreakdown(
                    format=fmt,
                    ledger=ledger,
                    allocation=allocation,
                    format_royalty=allocation.royalty,
                    returns_deduction=deduction,
                )
            )

        ctx.gross_royalty = sum(b.format_royalty for b in ctx.breakdowns)
        ctx.returns_deduction = sum(b.returns_deduction.amount for b in ctx.breakdowns)
        ctx.royalty_after_returns = max(0, ctx.gross_royalty - ctx.returns_deduction)

    def _build(self, ctx: ProcessingContext) -> ComposedStatement:
        inputs = ctx.inputs
        calculations = StatementCalculations(
            period=inputs.period,
            format_breakdowns=tuple(ctx.breakdowns),
            returns_deduction=ctx.returns_deduction,
            gross_royalty=ctx.gross_royalty,
            advance_recoupment=ctx.recoupment,
            net_payable=ctx.net_payable,
            split_calculation=ctx.split,
            lifetime_context=ctx.lifetime_context,
        )
        return ComposedStatement(
            author_id=inputs.author_id,
            contract_id=ctx.terms.contract_id,
            calculations=calculations,
            warnings=ctx.warnings,
            payee=inputs.payee,
        )


class StatementComposer:
    """Reads one author's snapshots through the repositories and composes a statement."""

    def __init__(self, repositories: Repositories, settings: TenantSettings | None = None):
        self.repositories = repositories
        self.settings = settings or TenantSettings()
        self.calculator = StatementCalculator()
        self.lifetime_tracker = LifetimePositionTracker(repositories.ledger)
        self.recoupment_tracker = AdvanceRecoupmentTracker(repositories.recoupment)

    def gather_inputs(self, author_id: str, period: PeriodBounds, contract_id: str | None = None) -> StatementInputs:
        """
        Resolve everything the calculation needs. These reads are the only
        points where composition can block or fail on external data.
        """
        payee = self.repositories.payees.get_payee(author_id)
        if contract_id:
            terms = self.repositories.contracts.get_terms(contract_id)
        else:
            terms = self.repositories.contracts.find_for_author(author_id)

        title_terms = None
        co_owners = ()
        if terms.is_split and terms.title_id:
            owner_contracts = self.repositories.contracts.co_owners(terms.title_id)
            if owner_contracts:
                # Primary author's tiers price the whole title
                title_terms = owner_contracts[0]
                co_owners = tuple((t.author_id, t.split_ownership) for t in owner_contracts)
        pricing_terms = title_terms or terms

        ledger_repo = self.repositories.ledger
        active = ledger_repo.formats_with_activity(author_id, terms.contract_id, period.start_date, period.end_date)
        ledgers = {
            fmt: ledger_repo.get_period_totals(author_id, terms.contract_id, fmt, period.start_date, period.end_date)
            for fmt in sorted(set(pricing_terms.formats) | set(active))
        }

        positions = {}
        if pricing_terms.is_lifetime_mode:
            positions = self.lifetime_tracker.resolve_all(
                author_id,
                pricing_terms,
                period.start_date,
                fail_on_incomplete=self.settings.fail_on_incomplete_history,
                contract_id=terms.contract_id,
            )

        return StatementInputs(
            author_id=author_id,
            period=period,
            terms=terms,
            ledgers=ledgers,
            recoupment=self.recoupment_tracker.resolve_history(author_id, terms.contract_id),
            lifetime_positions=positions,
            payee=payee,
            title_terms=title_terms,
            co_owners=co_owners,
        )

    def compose(self, author_id: str, period: PeriodBounds, contract_id: str | None = None) -> ComposedStatement:
        """
        Compose one author's statement.

        Raises a RoyaltyEngineError subclass when the statement cannot be
        composed. Nothing is retried here.
        """
        try:
            inputs = self.gather_inputs(author_id, period, contract_id)
            statement = self.calculator.calculate(inputs)
        except RoyaltyEngineError as e:
            logger.warning(f"Statement not composed for author {author_id}: [{e.code}] {e}")
            raise

        warning_types = [w.type.value for w in statement.warnings]
        logger.info(
            f"Statement composed for author {author_id}: "
            f"net_payable={statement.calculations.net_payable} warnings={warning_types}"
        )
        return statement
