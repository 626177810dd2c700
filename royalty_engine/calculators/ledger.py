"""
Ledger Aggregator

Collapses raw sale and return rows into per-format period totals.
"""

from collections.abc import Iterable
from datetime import date

from ..models import PeriodBounds, PeriodLedger, ReturnRecord, SaleRecord


class LedgerAggregator:
    """Sums sales and approved returns for one author, period and format."""

    def aggregate(
        self,
        format: str,
        sales: Iterable[SaleRecord],
        returns: Iterable[ReturnRecord],
        period: PeriodBounds,
    ) -> PeriodLedger:
        """
        Build the PeriodLedger for a single format.

        Sales count when sale_date falls inside the period; returns count when
        they are approved and return_date falls inside the period.
        """
        quantity_sold = 0
        gross_revenue = 0
        for sale in sales:
            if sale.format == format and period.contains(sale.sale_date):
                quantity_sold += sale.quantity
                gross_revenue += sale.amount

        quantity_returned = 0
        returns_amount = 0
        for ret in returns:
            if ret.format == format and ret.is_approved and period.contains(ret.return_date):
                quantity_returned += ret.quantity
                returns_amount += ret.amount

        return PeriodLedger(
            format=format,
            quantity_sold=quantity_sold,
            quantity_returned=quantity_returned,
            gross_revenue=gross_revenue,
            returns_amount=returns_amount,
        )

    def formats_in_period(
        self,
        sales: Iterable[SaleRecord],
        returns: Iterable[ReturnRecord],
        period: PeriodBounds,
    ) -> list[str]:
        """Every format with a sale or an approved return inside the period."""
        formats = {sale.format for sale in sales if period.contains(sale.sale_date)}
        formats.update(ret.format for ret in returns if ret.is_approved and period.contains(ret.return_date))
        return sorted(formats)

    def aggregate_before(
        self,
        format: str,
        sales: Iterable[SaleRecord],
        returns: Iterable[ReturnRecord],
        before: date,
    ) -> tuple[int, int]:
        """Net units and net revenue strictly before a date."""
        units = 0
        revenue = 0
        for sale in sales:
            if sale.format == format and sale.sale_date < before:
                units += sale.quantity
                revenue += sale.amount
        for ret in returns:
            if ret.format == format and ret.is_approved and ret.return_date < before:
                units -= ret.quantity
                revenue -= ret.amount
        return max(0, units), max(0, revenue)
