from __future__ import annotations

import logging

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Customer, Sale, completed_sale
from app.services.filter_service import LIKE_ESCAPE, ListFilters, SortOrder, like_pattern, total_pages
from app.services.number_utils import to_decimal, to_float, to_int
from app.services.report_runner import gather_reports
from app.services.sales_query import ListQueries

logger = logging.getLogger(__name__)


async def get_customer_kpis(db: AsyncSession) -> dict:
    total_customers = (await db.execute(select(func.count(Customer.id)))).scalar_one()
    stats = (
        await db.execute(
            select(
                func.sum(Sale.total_amount).label('revenue'),
                func.count(Sale.id).label('orders'),
            ).where(completed_sale(), Sale.customer_id.is_not(None))
        )
    ).one()

    revenue = to_decimal(stats.revenue)
    orders = to_int(stats.orders)
    return {
        'totalCustomers': to_int(total_customers),
        'totalRevenue': float(revenue),
        'avgOverallTicket': to_float(revenue / orders) if orders > 0 else 0.0,
    }


def _matching_customers(filters: ListFilters) -> Select:
    stmt = select().select_from(Customer)
    if filters.search_term:
        pattern = like_pattern(filters.search_term)
        stmt = stmt.where(
            or_(
                Customer.customer_name.ilike(pattern, escape=LIKE_ESCAPE),
                Customer.email.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def build_customers_list_queries(filters: ListFilters) -> ListQueries:
    sales_stats = (
        select(
            Sale.customer_id.label('customer_id'),
            func.sum(Sale.total_amount).label('total_spent'),
            func.count(Sale.id).label('order_count'),
            func.avg(Sale.total_amount).label('avg_ticket'),
            func.max(Sale.created_at).label('last_order'),
        )
        .where(completed_sale())
        .group_by(Sale.customer_id)
        .subquery('sales_stats')
    )

    order_count = func.coalesce(sales_stats.c.order_count, 0).label('order_count')
    total_spent = func.coalesce(sales_stats.c.total_spent, 0).label('total_spent')
    avg_ticket = func.coalesce(sales_stats.c.avg_ticket, 0).label('avg_ticket')
    sort_columns = {'order_count': order_count, 'total_spent': total_spent, 'avg_ticket': avg_ticket}
    sort_column = sort_columns.get(filters.sort_by, order_count)
    direction = sort_column.asc() if filters.sort_order == SortOrder.ASC else sort_column.desc()

    matching = _matching_customers(filters)
    data = (
        matching.outerjoin(sales_stats, Customer.id == sales_stats.c.customer_id)
        .add_columns(
            Customer.id.label('id'),
            Customer.customer_name.label('name'),
            Customer.email.label('email'),
            Customer.phone_number.label('phone'),
            order_count,
            total_spent,
            avg_ticket,
            sales_stats.c.last_order.label('last_order'),
        )
        .order_by(direction, Customer.id.asc())
        .limit(filters.limit)
        .offset(filters.offset)
    )
    # Counted on the customer predicate alone; the stats join cannot add or remove customers.
    count = matching.add_columns(func.count(Customer.id))
    return ListQueries(data=data, count=count)


async def fetch_customer_rows(db: AsyncSession, filters: ListFilters) -> list[dict]:
    rows = (await db.execute(build_customers_list_queries(filters).data)).all()
    return [
        {
            'id': row.id,
            'name': row.name,
            'email': row.email,
            'phone': row.phone,
            'orderCount': to_int(row.order_count),
            'totalSpent': to_float(row.total_spent),
            'avgTicket': to_float(row.avg_ticket),
            'lastOrder': row.last_order.isoformat() if row.last_order else None,
        }
        for row in rows
    ]


async def count_customers(db: AsyncSession, filters: ListFilters) -> int:
    return to_int((await db.execute(build_customers_list_queries(filters).count)).scalar_one())


async def get_customers_page_data(session_factory: async_sessionmaker[AsyncSession], filters: ListFilters) -> dict:
    logger.debug('Building customers page for %s', filters)
    kpis, rows, total = await gather_reports(
        session_factory,
        (get_customer_kpis,),
        (fetch_customer_rows, filters),
        (count_customers, filters),
    )
    return {
        'totalCustomers': kpis['totalCustomers'],
        'totalRevenue': kpis['totalRevenue'],
        'avgOverallTicket': kpis['avgOverallTicket'],
        'customers': rows,
        'page': filters.page,
        'totalPages': total_pages(total, filters.limit),
    }
