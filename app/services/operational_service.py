from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Channel, Payment, PaymentType, Sale, Store
from app.services.filter_service import ReportFilters
from app.services.number_utils import seconds_to_minutes, to_float, to_int
from app.services.report_runner import gather_reports
from app.services.sales_query import base_sales_query, join_payments, project, with_channel, with_store

logger = logging.getLogger(__name__)

# No commission data exists in the schema.
NO_COMMISSION = 0


async def get_channel_performance(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    revenue = func.sum(Sale.total_amount).label('revenue')
    stmt = (
        project(
            with_channel(base_sales_query(filters, now=now)),
            Channel.name.label('name'),
            func.count(distinct(Sale.id)).label('orders'),
            revenue,
        )
        .group_by(Channel.name)
        .order_by(revenue.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'name': row.name,
            'orders': to_int(row.orders),
            'revenue': to_float(row.revenue),
            'commission': NO_COMMISSION,
        }
        for row in rows
    ]


async def get_store_performance(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    revenue = func.sum(Sale.total_amount).label('revenue')
    stmt = (
        project(
            with_store(base_sales_query(filters, now=now)),
            Store.id.label('id'),
            Store.name.label('name'),
            func.count(distinct(Sale.id)).label('orders'),
            revenue,
            func.avg(Sale.production_seconds + func.coalesce(Sale.delivery_seconds, 0)).label('avg_seconds'),
        )
        .group_by(Store.id, Store.name)
        .order_by(revenue.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'id': row.id,
            'name': row.name,
            'orders': to_int(row.orders),
            'revenue': to_float(row.revenue),
            'avgTime': seconds_to_minutes(row.avg_seconds),
        }
        for row in rows
    ]


async def get_payment_method_stats(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    total = func.sum(Payment.value).label('total')
    stmt = (
        project(
            join_payments(base_sales_query(filters, now=now)),
            PaymentType.description.label('method'),
            func.count(Payment.id).label('count'),
            total,
        )
        .group_by(PaymentType.description)
        .order_by(total.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'method': row.method,
            'count': to_int(row.count),
            'total': to_float(row.total),
        }
        for row in rows
    ]


def summarize_store_performance(store_data: list[dict]) -> dict:
    # Only valid while store_data covers every filtered sale (no store paging).
    total_orders = sum(store['orders'] for store in store_data)
    total_revenue = sum(store['revenue'] for store in store_data)
    weighted_time = sum(store['avgTime'] * store['orders'] for store in store_data)
    return {
        'totalOrders': total_orders,
        'totalRevenue': total_revenue,
        'avgTime': to_int(weighted_time / total_orders) if total_orders > 0 else 0,
    }


async def get_operational_data(session_factory: async_sessionmaker[AsyncSession], filters: ReportFilters) -> dict:
    logger.debug('Building operational page for %s', filters)
    store_data, channel_data, payment_methods = await gather_reports(
        session_factory,
        (get_store_performance, filters),
        (get_channel_performance, filters),
        (get_payment_method_stats, filters),
    )
    return {
        'kpis': summarize_store_performance(store_data),
        'storeData': store_data,
        'channelData': channel_data,
        'paymentMethods': payment_methods,
    }
