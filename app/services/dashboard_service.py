from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import distinct, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Category, Channel, Product, ProductSale, Sale
from app.services.filter_service import ReportFilters
from app.services.number_utils import format_brl, seconds_to_minutes, to_float, to_int
from app.services.report_runner import gather_reports
from app.services.sales_query import base_sales_query, filtered_sale_ids, project, with_channel

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 10
# Period-over-period comparison is not implemented; every row reports this.
UNCOMPUTED_CHANGE = 0
NOT_AVAILABLE = 'N/A'
WEEKDAY_NAMES = ('Domingo', 'Segunda', 'Terça', 'Quarta', 'Quinta', 'Sexta', 'Sábado')


def _distinct_orders():
    return func.count(distinct(Sale.id)).label('orders')


async def get_kpi_metrics(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> dict:
    stmt = project(
        base_sales_query(filters, now=now),
        func.sum(Sale.total_amount).label('revenue'),
        _distinct_orders(),
        func.avg(Sale.total_amount).label('avg_ticket'),
        func.avg(func.coalesce(Sale.production_seconds, 0) + func.coalesce(Sale.delivery_seconds, 0)).label(
            'avg_seconds'
        ),
    )
    row = (await db.execute(stmt)).one()
    return {
        'faturamentoTotal': to_float(row.revenue),
        'totalPedidos': to_int(row.orders),
        'ticketMedio': to_float(row.avg_ticket),
        'tempoMedio': seconds_to_minutes(row.avg_seconds),
    }


async def get_sales_chart_data(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    sale_day = func.date_trunc('day', Sale.created_at).label('sale_day')
    stmt = (
        project(
            base_sales_query(filters, now=now),
            sale_day,
            func.sum(Sale.total_amount).label('sales'),
            _distinct_orders(),
        )
        .group_by('sale_day')
        .order_by(sale_day.asc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'date': row.sale_day.strftime('%d/%m'),
            'sales': to_float(row.sales),
            'orders': to_int(row.orders),
        }
        for row in rows
    ]


async def get_channel_chart_data(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    sales = func.sum(Sale.total_amount).label('sales')
    stmt = (
        project(
            with_channel(base_sales_query(filters, now=now)),
            Channel.name.label('channel'),
            sales,
            _distinct_orders(),
        )
        .group_by(Channel.name)
        .order_by(sales.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'channel': row.channel,
            'sales': to_float(row.sales),
            'orders': to_int(row.orders),
        }
        for row in rows
    ]


async def get_top_products_data(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> list[dict]:
    sales = func.sum(ProductSale.total_price).label('sales')
    stmt = (
        select(
            Product.name.label('name'),
            Category.name.label('category'),
            sales,
            func.sum(ProductSale.quantity).label('quantity'),
        )
        .select_from(ProductSale)
        .join(Sale, ProductSale.sale_id == Sale.id)
        .join(Product, ProductSale.product_id == Product.id)
        .join(Category, Product.category_id == Category.id)
        .where(Sale.id.in_(filtered_sale_ids(filters, now=now)))
        .group_by(Product.name, Category.name)
        .order_by(sales.desc())
        .limit(TOP_PRODUCTS_LIMIT)
    )
    rows = (await db.execute(stmt)).all()
    return [
        {
            'name': row.name,
            'category': row.category,
            'sales': to_float(row.sales),
            'quantity': to_int(row.quantity),
            'change': UNCOMPUTED_CHANGE,
        }
        for row in rows
    ]


async def get_quick_insights(db: AsyncSession, filters: ReportFilters, now: datetime | None = None) -> dict:
    peak_orders = _distinct_orders()
    peak_stmt = (
        project(
            base_sales_query(filters, now=now),
            extract('hour', Sale.created_at).label('sale_hour'),
            peak_orders,
        )
        .group_by('sale_hour')
        .order_by(peak_orders.desc())
        .limit(1)
    )
    peak = (await db.execute(peak_stmt)).first()

    day_sales = func.sum(Sale.total_amount).label('sales')
    day_stmt = (
        project(
            base_sales_query(filters, now=now),
            extract('dow', Sale.created_at).label('sale_dow'),
            day_sales,
            _distinct_orders(),
        )
        .group_by('sale_dow')
        .order_by(day_sales.desc())
        .limit(1)
    )
    best_day = (await db.execute(day_stmt)).first()

    channels = await get_channel_chart_data(db, filters, now)
    top_channel = channels[0] if channels else None

    peak_hour = to_int(peak.sale_hour) if peak else 0
    peak_count = to_int(peak.orders) if peak else 0
    day_name = WEEKDAY_NAMES[to_int(best_day.sale_dow)] if best_day else NOT_AVAILABLE
    day_revenue = best_day.sales if best_day else 0
    day_orders = to_int(best_day.orders) if best_day else 0

    return {
        'horarioPico': {
            'hora': f'{peak_hour}h - {peak_hour + 1}h',
            'pedidos': f'{peak_count} pedidos',
        },
        'melhorDia': {
            'dia': day_name,
            'vendas': f'R$ {format_brl(day_revenue)}',
            'pedidos': f'{day_orders} pedidos',
        },
        'canalDestaque': {
            'canal': top_channel['channel'] if top_channel else NOT_AVAILABLE,
            'vendas': f"R$ {format_brl(top_channel['sales'] if top_channel else 0)}",
        },
    }


async def get_dashboard_data(session_factory: async_sessionmaker[AsyncSession], filters: ReportFilters) -> dict:
    logger.debug('Building dashboard for %s', filters)
    kpis, sales_chart, channel_chart, top_products, quick_insights = await gather_reports(
        session_factory,
        (get_kpi_metrics, filters),
        (get_sales_chart_data, filters),
        (get_channel_chart_data, filters),
        (get_top_products_data, filters),
        (get_quick_insights, filters),
    )
    return {
        'kpis': kpis,
        'salesChart': sales_chart,
        'channelChart': channel_chart,
        'topProducts': top_products,
        'quickInsights': quick_insights,
    }
