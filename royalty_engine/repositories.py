"""
Repository interfaces the engine reads through.

The engine never owns persistence: contracts, ledgers, recoupment history
and payee records come from these protocols. The in-memory implementations
back the HTTP surfaces (which receive snapshot payloads) and the tests.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Protocol, runtime_checkable

from .calculators.ledger import LedgerAggregator
from .exceptions import ContractNotFound, LedgerUnavailable, LifetimeHistoryIncomplete, PayeeNotFound
from .models import ContractTerms, PayeeIdentity, PeriodBounds, PeriodLedger, ReturnRecord, SaleRecord
from .money import to_minor_units


@runtime_checkable
class LedgerRepository(Protocol):
    def get_period_totals(
        self, author_id: str, contract_id: str, format: str, period_start: date, period_end: date
    ) -> PeriodLedger:
        ...

    def formats_with_activity(
        self, author_id: str, contract_id: str, period_start: date, period_end: date
    ) -> list[str]:
        """Formats with sales or approved returns in the period, tiered or not."""
        ...

    def get_lifetime_totals_before(
        self, author_id: str, contract_id: str, format: str, period_start: date
    ) -> tuple[int, int]:
        """(units, revenue) strictly before period_start. Raises LifetimeHistoryIncomplete."""
        ...


@runtime_checkable
class ContractRepository(Protocol):
    def get_terms(self, contract_id: str) -> ContractTerms:
        """Raises ContractNotFound."""
        ...

    def find_for_author(self, author_id: str) -> ContractTerms:
        """The author's active contract. Raises ContractNotFound."""
        ...

    def co_owners(self, title_id: str) -> list[ContractTerms]:
        """Split contracts on a title, primary author first, then by author."""
        ...


@runtime_checkable
class RecoupmentRepository(Protocol):
    def get_previously_recouped(self, author_id: str, contract_id: str) -> int:
        ...


@runtime_checkable
class PayeeRepository(Protocol):
    def get_payee(self, author_id: str) -> PayeeIdentity:
        """Raises PayeeNotFound."""
        ...


# =============================================================================
# IN-MEMORY SNAPSHOT IMPLEMENTATIONS
# =============================================================================


class InMemoryContractRepository:
    def __init__(self, contracts: Iterable[ContractTerms] = ()):
        self._by_id = {terms.contract_id: terms for terms in contracts}

    def get_terms(self, contract_id: str) -> ContractTerms:
        terms = self._by_id.get(contract_id)
        if terms is None:
            raise ContractNotFound(contract_id=contract_id)
        return terms

    def find_for_author(self, author_id: str) -> ContractTerms:
        matches = sorted(
            (t for t in self._by_id.values() if t.author_id == author_id), key=lambda t: t.contract_id
        )
        if not matches:
            raise ContractNotFound(author_id=author_id)
        return matches[0]

    def title_for(self, contract_id: str) -> str | None:
        terms = self._by_id.get(contract_id)
        return terms.title_id if terms else None

    def co_owners(self, title_id: str) -> list[ContractTerms]:
        return sorted(
            (t for t in self._by_id.values() if t.title_id == title_id and t.is_split),
            key=lambda t: (not t.is_primary, t.author_id, t.contract_id),
        )


class InMemoryLedgerRepository:
    """
    Ledger rows held in memory.

    Rows match a contract by contract_id, or by title_id when the contract
    covers a co-owned title (title sales are shared by every co-owner).
    """

    def __init__(
        self,
        sales: Iterable[SaleRecord] = (),
        returns: Iterable[ReturnRecord] = (),
        contracts: InMemoryContractRepository | None = None,
        incomplete_history: Iterable[tuple[str, str | None]] = (),
        unavailable: Iterable[str] = (),
    ):
        self.sales = list(sales)
        self.returns = list(returns)
        self.contracts = contracts or InMemoryContractRepository()
        # (contract_id, format); a None format marks every format
        self.incomplete_history = set(incomplete_history)
        self.unavailable = set(unavailable)
        self.aggregator = LedgerAggregator()

    def _rows_for(self, contract_id: str):
        if contract_id in self.unavailable:
            raise LedgerUnavailable(f"Ledger unavailable for contract {contract_id}", contract_id=contract_id)
        title_id = self.contracts.title_for(contract_id)

        def matches(row) -> bool:
            return row.contract_id == contract_id or (title_id is not None and row.title_id == title_id)

        return [s for s in self.sales if matches(s)], [r for r in self.returns if matches(r)]

    def get_period_totals(
        self, author_id: str, contract_id: str, format: str, period_start: date, period_end: date
    ) -> PeriodLedger:
        sales, returns = self._rows_for(contract_id)
        return self.aggregator.aggregate(format, sales, returns, PeriodBounds(period_start, period_end))

    def formats_with_activity(
        self, author_id: str, contract_id: str, period_start: date, period_end: date
    ) -> list[str]:
        sales, returns = self._rows_for(contract_id)
        return self.aggregator.formats_in_period(sales, returns, PeriodBounds(period_start, period_end))

    def get_lifetime_totals_before(
        self, author_id: str, contract_id: str, format: str, period_start: date
    ) -> tuple[int, int]:
        if (contract_id, format) in self.incomplete_history or (contract_id, None) in self.incomplete_history:
            raise LifetimeHistoryIncomplete(contract_id, format, period_start)
        sales, returns = self._rows_for(contract_id)
        return self.aggregator.aggregate_before(format, sales, returns, period_start)


class InMemoryRecoupmentRepository:
    def __init__(self, recouped: dict[tuple[str, str], int] | None = None):
        self._recouped = dict(recouped or {})

    def get_previously_recouped(self, author_id: str, contract_id: str) -> int:
        return self._recouped.get((author_id, contract_id), 0)


class InMemoryPayeeRepository:
    def __init__(self, payees: Iterable[PayeeIdentity] = ()):
        self._by_id = {payee.id: payee for payee in payees}

    def get_payee(self, author_id: str) -> PayeeIdentity:
        payee = self._by_id.get(author_id)
        if payee is None:
            raise PayeeNotFound(author_id)
        return payee


@dataclass
class Repositories:
    """The four repositories the composer reads through."""

    contracts: ContractRepository
    ledger: LedgerRepository
    recoupment: RecoupmentRepository
    payees: PayeeRepository

    @classmethod
    def from_snapshot(cls, data: dict) -> "Repositories":
        """
        Load a request payload into in-memory repositories.

        Expected keys: contracts, payees, sales, returns, recoupment,
        incomplete_history. All are optional lists.
        """
        contracts = InMemoryContractRepository(ContractTerms.from_dict(c) for c in data.get("contracts", []))
        ledger = InMemoryLedgerRepository(
            sales=[SaleRecord.from_dict(s) for s in data.get("sales", [])],
            returns=[ReturnRecord.from_dict(r) for r in data.get("returns", [])],
            contracts=contracts,
            incomplete_history=[
                (str(entry["contract_id"]), entry.get("format")) for entry in data.get("incomplete_history", [])
            ],
        )
        recoupment = InMemoryRecoupmentRepository(
            {
                (str(entry["author_id"]), str(entry["contract_id"])): to_minor_units(entry["previously_recouped"])
                for entry in data.get("recoupment", [])
            }
        )
        payees = InMemoryPayeeRepository(PayeeIdentity.from_dict(p) for p in data.get("payees", []))
        return cls(contracts=contracts, ledger=ledger, recoupment=recoupment, payees=payees)
