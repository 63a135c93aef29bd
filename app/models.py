from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    ColumnElement,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Tables are populated by an external loader; this service only reads them.


class Base(DeclarativeBase):
    pass


class SaleStatus(str, Enum):
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class Channel(Base):
    __tablename__ = 'channels'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class Store(Base):
    __tablename__ = 'stores'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(2))


class Category(Base):
    __tablename__ = 'categories'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    category_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('categories.id'))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_name: Mapped[str | None] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(100))
    phone_number: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime | None] = mapped_column(DateTime)


class Sale(Base):
    __tablename__ = 'sales'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey('stores.id'), nullable=False)
    channel_id: Mapped[int] = mapped_column(Integer, ForeignKey('channels.id'), nullable=False)
    customer_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('customers.id'))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    sale_status_desc: Mapped[str] = mapped_column(String(100), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    production_seconds: Mapped[int | None] = mapped_column(Integer)
    delivery_seconds: Mapped[int | None] = mapped_column(Integer)


class ProductSale(Base):
    __tablename__ = 'product_sales'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)


class ItemProductSale(Base):
    __tablename__ = 'item_product_sales'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_sale_id: Mapped[int] = mapped_column(
        Integer, ForeignKey('product_sales.id', ondelete='CASCADE'), nullable=False
    )
    item_id: Mapped[int | None] = mapped_column(Integer)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    additional_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))


class PaymentType(Base):
    __tablename__ = 'payment_types'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False)


class Payment(Base):
    __tablename__ = 'payments'

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False)
    payment_type_id: Mapped[int | None] = mapped_column(Integer, ForeignKey('payment_types.id'))
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)


def completed_sale() -> ColumnElement[bool]:
    return Sale.sale_status_desc == SaleStatus.COMPLETED.value
