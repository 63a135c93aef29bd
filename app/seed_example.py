from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import SessionLocal, engine
from app.models import (
    Base,
    Category,
    Channel,
    Customer,
    Payment,
    PaymentType,
    Product,
    ProductSale,
    Sale,
    SaleStatus,
    Store,
)

STORE_NAMES = ['Centro', 'Shopping Norte']
CHANNEL_NAMES = ['Presencial', 'iFood']
PAYMENT_TYPES = ['Cartão de Crédito', 'PIX']
MENU = {
    'Burgers': [('Classic Burger', Decimal('32.00')), ('Bacon Burger', Decimal('38.50'))],
    'Bebidas': [('Refrigerante', Decimal('7.00'))],
}
CUSTOMERS = [('Ana Souza', 'ana@example.com', '11999990001'), ('Bruno Lima', 'bruno@example.com', '11999990002')]


async def _get_or_create(db: AsyncSession, model, *, lookup: dict, **values):
    conditions = [getattr(model, key) == value for key, value in lookup.items()]
    row = (await db.execute(select(model).where(*conditions))).scalars().first()
    if row is None:
        row = model(**lookup, **values)
        db.add(row)
        await db.flush()
    return row


async def seed(*, create_tables: bool = False) -> int:
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        stores = [await _get_or_create(db, Store, lookup={'name': name}) for name in STORE_NAMES]
        channels = [await _get_or_create(db, Channel, lookup={'name': name}) for name in CHANNEL_NAMES]
        payment_types = [
            await _get_or_create(db, PaymentType, lookup={'description': description}) for description in PAYMENT_TYPES
        ]
        products: list[tuple[Product, Decimal]] = []
        for category_name, items in MENU.items():
            category = await _get_or_create(db, Category, lookup={'name': category_name})
            for product_name, price in items:
                product = await _get_or_create(db, Product, lookup={'name': product_name}, category_id=category.id)
                products.append((product, price))
        customers = [
            await _get_or_create(db, Customer, lookup={'email': email}, customer_name=name, phone_number=phone)
            for name, email, phone in CUSTOMERS
        ]

        existing_sales = (await db.execute(select(Sale.id).limit(1))).first()
        if existing_sales is not None:
            await db.commit()
            return 0

        now = datetime.now().replace(minute=0, second=0, microsecond=0)
        created = 0
        for day_offset in range(7):
            for index, (product, price) in enumerate(products):
                quantity = Decimal(index % 2 + 1)
                status = SaleStatus.CANCELLED if (day_offset + index) % 5 == 0 else SaleStatus.COMPLETED
                sale = Sale(
                    store_id=stores[index % len(stores)].id,
                    channel_id=channels[(day_offset + index) % len(channels)].id,
                    customer_id=customers[index % len(customers)].id if index < len(customers) else None,
                    created_at=now - timedelta(days=day_offset, hours=index * 3),
                    sale_status_desc=status.value,
                    total_amount=price * quantity,
                    production_seconds=600 + index * 120,
                    delivery_seconds=900 if channels[(day_offset + index) % len(channels)].name == 'iFood' else None,
                )
                db.add(sale)
                await db.flush()
                db.add(
                    ProductSale(
                        sale_id=sale.id,
                        product_id=product.id,
                        quantity=quantity,
                        base_price=price,
                        total_price=price * quantity,
                    )
                )
                db.add(
                    Payment(
                        sale_id=sale.id,
                        payment_type_id=payment_types[index % len(payment_types)].id,
                        value=price * quantity,
                    )
                )
                created += 1

        await db.commit()
    return created


async def _seed_and_close(*, create_tables: bool) -> int:
    try:
        return await seed(create_tables=create_tables)
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description='Insert a small demo dataset for local dashboards.')
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='Create any missing tables before seeding.',
    )
    args = parser.parse_args()

    created = asyncio.run(_seed_and_close(create_tables=args.create_tables))
    print(f'Seed data inserted/verified: sales_created={created}')


if __name__ == '__main__':
    main()
