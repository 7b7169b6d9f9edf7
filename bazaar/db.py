"""
Database layer: SQLAlchemy models, engine setup, transactions.

    sessions, engine = await create_database("sqlite+aiosqlite:///./shop.db")

    async with transaction(sessions) as session:
        ...                       # commit on exit, rollback on any exception

Shared mutable resources (variant stock, coupon usage) are only ever changed
through conditional UPDATEs inside a transaction. On SQLite every transaction
starts with BEGIN IMMEDIATE, so writers are serialized by the database
rather than by in-process locks.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from bazaar._types import utcnow

MAX_PURCHASE = 2**53 - 1

SessionFactory = async_sessionmaker[AsyncSession]


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class ProductTable(Base):
    """
    Products.

    ``price`` and ``in_stock`` mirror the default variant when variants
    exist; for legacy products they are the source of truth.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product_type: Mapped[str] = mapped_column(String(10), nullable=False, default="single")
    combo_price_mode: Mapped[str] = mapped_column(String(20), nullable=False, default="fixed")
    combo_discount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    show_in_combos_section: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=9999, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    variants: Mapped[list[VariantTable]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="VariantTable.position",
        lazy="selectin",
    )
    combo_items: Mapped[list[ComboItemTable]] = relationship(
        cascade="all, delete-orphan",
        order_by="ComboItemTable.position",
        lazy="selectin",
    )


class VariantTable(Base):
    __tablename__ = "product_variants"
    __table_args__ = (UniqueConstraint("product_id", "label_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    label_key: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    product: Mapped[ProductTable] = relationship(back_populates="variants")


class ComboItemTable(Base):
    """Combo composition. ``child_product_id`` is not a foreign key: children may be deleted."""

    __tablename__ = "combo_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    combo_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    child_product_id: Mapped[str] = mapped_column(String(40), nullable=False)
    variant_label: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class ReviewTable(Base):
    """One review per (product, user)."""

    __tablename__ = "product_reviews"
    __table_args__ = (UniqueConstraint("product_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    user_name: Mapped[str] = mapped_column(String(100), nullable=False, default="Customer")
    city: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class CartTable(Base):
    __tablename__ = "carts"

    user_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    items: Mapped[list[CartItemTable]] = relationship(
        cascade="all, delete-orphan",
        order_by="CartItemTable.position",
        lazy="selectin",
    )


class CartItemTable(Base):
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("carts.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_id: Mapped[str] = mapped_column(String(40), nullable=False)
    variant_label: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_add: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    image: Mapped[str] = mapped_column(Text, nullable=False, default="")


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class CouponTable(Base):
    """``usage_limit`` is the number of remaining uses."""

    __tablename__ = "coupons"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    discount_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    min_purchase: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    max_purchase: Mapped[int] = mapped_column(BigInteger, nullable=False, default=MAX_PURCHASE)
    usage_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class PendingOrderTable(Base):
    """Would-be online order awaiting the gateway webhook."""

    __tablename__ = "pending_orders"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    coupon_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payment_intent_id: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    order_code: Mapped[str] = mapped_column(String(4), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    coupon_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payment_status: Mapped[str] = mapped_column(String(10), nullable=False)
    order_status: Mapped[str] = mapped_column(String(12), nullable=False, default="Placed")
    payment_intent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class OrderHistoryTable(Base):
    """Terminal projection of an order. Keeps the order code."""

    __tablename__ = "order_history"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    order_code: Mapped[str] = mapped_column(String(4), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    coupon_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payment_status: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(12), nullable=False)
    payment_intent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class TransactionTable(Base):
    """Append-only payment receipt."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    order_id: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(10), nullable=False, default="Success")
    transaction_id: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Take pysqlite's transaction handling over and begin with BEGIN IMMEDIATE."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(url, echo=echo)
    if engine.dialect.name == "sqlite":
        _serialize_sqlite_writers(engine)
    return engine


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    echo: bool = False,
) -> tuple[SessionFactory, AsyncEngine]:
    """Create tables if missing and return (session_factory, engine)."""
    engine = create_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


@asynccontextmanager
async def transaction(sessions: SessionFactory) -> AsyncIterator[AsyncSession]:
    """One session, one transaction. Commits on exit, rolls back on exception."""
    async with sessions() as session:
        async with session.begin():
            yield session


__all__ = (
    "Base",
    "ProductTable",
    "VariantTable",
    "ComboItemTable",
    "ReviewTable",
    "CartTable",
    "CartItemTable",
    "CouponTable",
    "PendingOrderTable",
    "OrderTable",
    "OrderHistoryTable",
    "TransactionTable",
    "MAX_PURCHASE",
    "SessionFactory",
    "create_engine",
    "create_database",
    "transaction",
)
