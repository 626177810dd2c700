"""
Typed errors for the royalty engine.

Every error that stops a statement from being composed is a subclass of
RoyaltyEngineError and carries a machine-readable ``code`` class attribute,
so the batch orchestrator and the HTTP handlers can report failures without
parsing messages.

    RoyaltyEngineError
    +-- ContractNotFound          contract_not_found
    +-- PayeeNotFound             payee_not_found
    +-- LedgerUnavailable         ledger_unavailable
    |   +-- LifetimeHistoryIncomplete   lifetime_history_incomplete
    +-- InvalidStatementInput     invalid_input        (also a ValueError)
        +-- MalformedTierTable    malformed_tier_table

Input-shape errors subclass ValueError so the API surfaces keep answering
them with 400 / validation_failed.
"""

from datetime import date


class RoyaltyEngineError(Exception):
    """Base class for fatal statement errors."""

    code: str = "royalty_engine_error"


class ContractNotFound(RoyaltyEngineError):
    """No contract could be resolved for the author or contract ID."""

    code: str = "contract_not_found"

    def __init__(self, author_id: str | None = None, contract_id: str | None = None):
        self.author_id = author_id
        self.contract_id = contract_id
        if contract_id:
            message = f"Contract not found: {contract_id}"
        else:
            message = f"No active contract found for author {author_id}"
        super().__init__(message)


class PayeeNotFound(RoyaltyEngineError):
    """Author has no payee record (neither contact nor legacy author)."""

    code: str = "payee_not_found"

    def __init__(self, author_id: str):
        self.author_id = author_id
        super().__init__(f"Payee not found for author {author_id}")


class LedgerUnavailable(RoyaltyEngineError):
    """The sales ledger could not be read."""

    code: str = "ledger_unavailable"

    def __init__(self, message: str, contract_id: str | None = None, format: str | None = None):
        self.contract_id = contract_id
        self.format = format
        super().__init__(message)


class LifetimeHistoryIncomplete(LedgerUnavailable):
    """Historical ledger data needed for lifetime tiering is missing."""

    code: str = "lifetime_history_incomplete"

    def __init__(self, contract_id: str, format: str, period_start: date):
        self.period_start = period_start
        super().__init__(
            f"Lifetime sales history incomplete for contract {contract_id} "
            f"({format}) before {period_start.isoformat()}",
            contract_id=contract_id,
            format=format,
        )


class InvalidStatementInput(RoyaltyEngineError, ValueError):
    """Input snapshot violates a constraint the engine relies on."""

    code: str = "invalid_input"


class MalformedTierTable(InvalidStatementInput):
    """Tier table has a gap, an overlap, or no terminal tier."""

    code: str = "malformed_tier_table"

    def __init__(self, format: str, reason: str):
        self.format = format
        self.reason = reason
        super().__init__(f"Malformed tier table for format '{format}': {reason}")
