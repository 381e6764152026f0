"""ORM models for households, members, categories and imported transactions.

Money columns are ``Numeric(12, 2)``; ids are UUIDs generated client-side so
rows can be created without a round trip for the key.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import expression as sa_expr


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: hh_households / hh_members
# ---------------------------


class HhHousehold(Base):
    __tablename__ = "hh_households"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class HhMember(Base):
    __tablename__ = "hh_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    household_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("hh_households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Null for placeholder members that have no login of their own.
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'member'"))
    status: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'approved'"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('approved', 'pending', 'inactive')", name="ck_hh_members_status"
        ),
    )


# ---------------------------
# Reference: hh_categories
# ---------------------------


class HhCategory(Base):
    __tablename__ = "hh_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    household_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("hh_households.id", ondelete="CASCADE"), nullable=False
    )
    # Uniqueness is per household and case-insensitive; see the functional
    # index declared below the class.
    name: Mapped[str] = mapped_column(String, nullable=False)
    icon: Mapped[str | None] = mapped_column(String, nullable=True)
    color: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'#4ECDC4'"))
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


Index(
    "uq_hh_categories_household_lower_name",
    HhCategory.household_id,
    func.lower(HhCategory.name),
    unique=True,
)


# ---------------------------
# Core: hh_transactions / hh_transaction_splits
# ---------------------------


class HhTransaction(Base):
    __tablename__ = "hh_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    household_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("hh_households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String, nullable=False)
    paid_by_member_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hh_members.id"), nullable=True
    )
    paid_to_member_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hh_members.id"), nullable=True
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hh_categories.id", ondelete="SET NULL"), nullable=True
    )
    split_type: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'equal'"))
    paid_by_type: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'single'")
    )
    split_member_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hh_members.id"), nullable=True
    )
    # Self-reference: a reimbursement points at the expense it offsets.
    reimburses_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hh_transactions.id", ondelete="SET NULL"), nullable=True
    )
    excluded_from_budget: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    splits: Mapped[list[HhTransactionSplit]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="HhTransactionSplit.position",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_hh_transactions_amount_positive"),
        CheckConstraint(
            "transaction_type IN ('expense', 'income', 'reimbursement', 'settlement')",
            name="ck_hh_transactions_type",
        ),
    )


class HhTransactionSplit(Base):
    __tablename__ = "hh_transaction_splits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("hh_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("hh_members.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    owed_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    owed_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)

    transaction: Mapped[HhTransaction] = relationship(back_populates="splits")


__all__ = [
    "Base",
    "HhHousehold",
    "HhMember",
    "HhCategory",
    "HhTransaction",
    "HhTransactionSplit",
]
