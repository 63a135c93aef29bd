from __future__ import annotations

import logging

from sqlalchemy import and_, distinct, func, join, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Category, ItemProductSale, Product, ProductSale, Sale, completed_sale
from app.services.dashboard_service import UNCOMPUTED_CHANGE
from app.services.filter_service import LIKE_ESCAPE, ListFilters, SortOrder, like_pattern, total_pages
from app.services.number_utils import to_decimal, to_float, to_int
from app.services.report_runner import gather_reports
from app.services.sales_query import ListQueries

logger = logging.getLogger(__name__)


async def get_product_kpis(db: AsyncSession) -> dict:
    total_products = (
        await db.execute(select(func.count(distinct(Product.id))).where(Product.deleted_at.is_(None)))
    ).scalar_one()

    totals = (
        await db.execute(
            select(
                func.sum(ProductSale.total_price).label('revenue'),
                func.sum(ProductSale.quantity).label('quantity'),
            )
            .select_from(ProductSale)
            .join(Sale, ProductSale.sale_id == Sale.id)
            .where(completed_sale())
        )
    ).one()

    revenue = to_decimal(totals.revenue)
    quantity = to_decimal(totals.quantity)
    avg_price = revenue / quantity if quantity > 0 else 0
    return {
        'totalProducts': to_int(total_products),
        'totalRevenue': float(revenue),
        'avgPrice': to_float(avg_price),
    }


def build_products_list_queries(filters: ListFilters) -> ListQueries:
    # Status is checked inside the nested join so products without completed sales keep a NULL row.
    completed_lines = join(ProductSale, Sale, and_(ProductSale.sale_id == Sale.id, completed_sale()))
    options_per_line = (
        select(
            ItemProductSale.product_sale_id.label('product_sale_id'),
            func.count(ItemProductSale.id).label('options'),
        )
        .group_by(ItemProductSale.product_sale_id)
        .subquery('options_per_line')
    )

    base = (
        select()
        .select_from(Product)
        .outerjoin(Category, Product.category_id == Category.id)
        .outerjoin(completed_lines, ProductSale.product_id == Product.id)
        .outerjoin(options_per_line, options_per_line.c.product_sale_id == ProductSale.id)
        .where(Product.deleted_at.is_(None))
        .group_by(Product.id, Category.name)
    )
    if filters.search_term:
        pattern = like_pattern(filters.search_term)
        base = base.where(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Category.name.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    price = func.coalesce(func.avg(ProductSale.base_price), 0).label('price')
    sales = func.coalesce(func.sum(ProductSale.total_price), 0).label('sales')
    quantity = func.coalesce(func.sum(ProductSale.quantity), 0).label('quantity')
    options_count = func.coalesce(func.sum(options_per_line.c.options), 0).label('options_count')
    sort_columns = {'price': price, 'sales': sales, 'quantity': quantity}
    sort_column = sort_columns.get(filters.sort_by, sales)
    direction = sort_column.asc() if filters.sort_order == SortOrder.ASC else sort_column.desc()

    data = (
        base.add_columns(
            Product.id.label('id'),
            Product.name.label('name'),
            Category.name.label('category'),
            price,
            sales,
            quantity,
            options_count,
        )
        .order_by(direction, Product.id.asc())
        .limit(filters.limit)
        .offset(filters.offset)
    )
    count = select(func.count()).select_from(base.add_columns(Product.id).subquery('matched_products'))
    return ListQueries(data=data, count=count)


async def fetch_product_rows(db: AsyncSession, filters: ListFilters) -> list[dict]:
    rows = (await db.execute(build_products_list_queries(filters).data)).all()
    return [
        {
            'id': row.id,
            'name': row.name,
            'category': row.category,
            'price': to_float(row.price),
            'sales': to_float(row.sales),
            'quantity': to_int(row.quantity),
            'options_count': to_int(row.options_count),
            'change': UNCOMPUTED_CHANGE,
        }
        for row in rows
    ]


async def count_products(db: AsyncSession, filters: ListFilters) -> int:
    return to_int((await db.execute(build_products_list_queries(filters).count)).scalar_one())


def products_list_payload(rows: list[dict], total: int, filters: ListFilters) -> dict:
    return {
        'products': rows,
        'page': filters.page,
        'totalPages': total_pages(total, filters.limit),
    }


async def get_products_page_data(session_factory: async_sessionmaker[AsyncSession], filters: ListFilters) -> dict:
    logger.debug('Building products page for %s', filters)
    kpis, rows, total = await gather_reports(
        session_factory,
        (get_product_kpis,),
        (fetch_product_rows, filters),
        (count_products, filters),
    )
    # The listing carries no product total, so the global KPI count is kept.
    return {**kpis, **products_list_payload(rows, total, filters)}
