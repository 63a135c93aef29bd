from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from sqlalchemy import Select, select

from app.models import Channel, Payment, PaymentType, Sale, Store, completed_sale
from app.services.filter_service import ReportFilters, period_range

CHANNELS = 'channels'
STORES = 'stores'
PAYMENTS = 'payments'


@dataclass(frozen=True)
class SalesQuery:
    """Filtered FROM/WHERE over ``sales`` with no projection yet.

    Each helper returns a new value. ``joined`` lists the tables already joined
    so a report that needs a join the filters may have added never joins twice.
    """

    stmt: Select
    joined: frozenset[str] = frozenset()

    def has_join(self, table: str) -> bool:
        return table in self.joined


@dataclass(frozen=True)
class ListQueries:
    """Page of rows plus its total; both share one FROM/WHERE/GROUP BY."""

    data: Select
    count: Select


def _join(query: SalesQuery, table: str, target, onclause) -> SalesQuery:
    if query.has_join(table):
        return query
    return replace(query, stmt=query.stmt.join(target, onclause), joined=query.joined | {table})


def with_channel(query: SalesQuery) -> SalesQuery:
    return _join(query, CHANNELS, Channel, Sale.channel_id == Channel.id)


def with_store(query: SalesQuery) -> SalesQuery:
    return _join(query, STORES, Store, Sale.store_id == Store.id)


def join_payments(query: SalesQuery) -> SalesQuery:
    if query.has_join(PAYMENTS):
        return query
    stmt = query.stmt.join(Payment, Sale.id == Payment.sale_id).join(
        PaymentType, Payment.payment_type_id == PaymentType.id
    )
    return replace(query, stmt=stmt, joined=query.joined | {PAYMENTS})


def base_sales_query(filters: ReportFilters, *, now: datetime | None = None) -> SalesQuery:
    start, end = period_range(filters.period, now=now)
    query = SalesQuery(
        stmt=select().select_from(Sale).where(Sale.created_at.between(start, end)).where(completed_sale())
    )

    if filters.channel_selected:
        query = with_channel(query)
        query = replace(query, stmt=query.stmt.where(Channel.name == filters.channel))

    if filters.store_selected:
        query = with_store(query)
        query = replace(query, stmt=query.stmt.where(Store.name == filters.store))

    return query


def project(query: SalesQuery, *columns) -> Select:
    return query.stmt.add_columns(*columns)


def filtered_sale_ids(filters: ReportFilters, *, now: datetime | None = None) -> Select:
    # Used inside IN (...) next to an outer ``sales``; must not correlate to it.
    return project(base_sales_query(filters, now=now), Sale.id).correlate(None)
