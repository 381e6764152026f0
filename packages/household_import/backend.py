"""Backend contract used by the import orchestrator, plus a SQLAlchemy implementation.

``HouseholdBackend`` is the only coupling between the import engine and the
outside world. Implementations raise any exception to reject a call; the
orchestrator records the message verbatim against the owning row.

``SqlAlchemyBackend`` persists to the ORM models in ``db.models.household``.
Each create call runs in its own transaction, so a rejected row never undoes
rows committed before it.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.household import (
    HhCategory,
    HhHousehold,
    HhMember,
    HhTransaction,
    HhTransactionSplit,
)

from .categories import normalize_name, validate_name
from .errors import CommitError
from .logging_setup import get_logger
from .models import (
    Category,
    Member,
    MemberSplit,
    MemberStatus,
    PaidByType,
    SplitType,
    TransactionType,
)
from .parsing import quantize_2

logger = get_logger("household_import.backend")

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


@runtime_checkable
class HouseholdBackend(Protocol):
    def create_category(
        self,
        household_id: UUID,
        *,
        name: str,
        icon: str | None,
        color: str,
        image_url: str | None,
        sort_order: int,
    ) -> Category: ...

    def fetch_categories(self, household_id: UUID) -> list[Category]: ...

    def fetch_members(self, household_id: UUID) -> list[Member]: ...

    def create_transaction_with_splits(
        self,
        household_id: UUID,
        *,
        date: date,
        description: str,
        amount: Decimal,
        transaction_type: TransactionType,
        paid_by_member_id: UUID | None,
        paid_to_member_id: UUID | None,
        category_id: UUID | None,
        split_type: SplitType,
        paid_by_type: PaidByType,
        split_member_id: UUID | None,
        reimburses_transaction_id: UUID | None,
        excluded_from_budget: bool,
        notes: str | None,
        created_by_user_id: UUID | None,
        splits: Sequence[MemberSplit] | None,
    ) -> UUID: ...


# ---------------------------------------------------------------------------
# Default allocation
# ---------------------------------------------------------------------------


def default_splits(
    *,
    amount: Decimal,
    split_type: SplitType,
    members: Sequence[Member],
    paid_by_member_id: UUID | None,
    split_member_id: UUID | None,
) -> list[MemberSplit]:
    """Allocation used when a create call carries no explicit splits.

    ``equal`` (and ``custom`` without data) shares the amount across
    ``members`` in whole cents, giving leftover cents to the first members.
    ``payer_only`` charges everything to the split member, or the payer when
    no split member is set. The payer is recorded as having paid in full.
    """

    names = {m.id: m.display_name for m in members}

    def _split(member_id: UUID, owed: Decimal) -> MemberSplit:
        paid = amount if member_id == paid_by_member_id else Decimal("0")
        return MemberSplit(
            member_id=member_id,
            display_name=names.get(member_id, ""),
            owed_amount=owed,
            owed_percentage=quantize_2(owed / amount * _HUNDRED),
            paid_amount=paid,
            paid_percentage=_HUNDRED if paid else Decimal("0"),
        )

    if split_type is SplitType.PAYER_ONLY:
        owner = split_member_id or paid_by_member_id
        if owner is None:
            return []
        out = [_split(owner, amount)]
        if paid_by_member_id is not None and paid_by_member_id != owner:
            out.append(_split(paid_by_member_id, Decimal("0")))
        return out

    ids = [m.id for m in members]
    if not ids:
        return [_split(paid_by_member_id, amount)] if paid_by_member_id else []
    share = (amount / len(ids)).quantize(_CENT, rounding=ROUND_DOWN)
    remainder = int((amount - share * len(ids)) / _CENT)
    out = [_split(mid, share + (_CENT if i < remainder else 0)) for i, mid in enumerate(ids)]
    if paid_by_member_id is not None and paid_by_member_id not in ids:
        out.append(_split(paid_by_member_id, Decimal("0")))
    return out


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


class SqlAlchemyBackend:
    """Reference backend over the shared ``db`` library.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL; falls back to ``DATABASE_URL`` when ``None``.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    # -- reads --------------------------------------------------------------

    def fetch_categories(self, household_id: UUID) -> list[Category]:
        with session_scope(database_url=self.database_url) as session:
            rows = session.execute(
                select(HhCategory)
                .where(HhCategory.household_id == household_id)
                .order_by(HhCategory.sort_order, HhCategory.name)
            ).scalars()
            return [Category.model_validate(r) for r in rows]

    def fetch_members(self, household_id: UUID) -> list[Member]:
        with session_scope(database_url=self.database_url) as session:
            rows = session.execute(
                select(HhMember)
                .where(HhMember.household_id == household_id)
                .order_by(HhMember.created_at, HhMember.display_name)
            ).scalars()
            return [Member.model_validate(r) for r in rows]

    # -- writes -------------------------------------------------------------

    def create_category(
        self,
        household_id: UUID,
        *,
        name: str,
        icon: str | None,
        color: str,
        image_url: str | None,
        sort_order: int,
    ) -> Category:
        name_n = normalize_name(name)
        check = validate_name(name_n)
        if not check.ok:
            raise CommitError(f"Invalid category name: {check.reason}")

        try:
            with session_scope(database_url=self.database_url) as session:
                self._require_household(session, household_id)
                existing = session.execute(
                    select(HhCategory.id).where(
                        HhCategory.household_id == household_id,
                        func.lower(HhCategory.name) == name_n.lower(),
                    )
                ).first()
                if existing is not None:
                    raise CommitError(f"Category '{name_n}' already exists")
                row = HhCategory(
                    household_id=household_id,
                    name=name_n,
                    icon=icon,
                    color=color,
                    image_url=image_url,
                    sort_order=sort_order,
                )
                session.add(row)
                session.flush()
                created = Category.model_validate(row)
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same name
            raise CommitError(f"Category '{name_n}' already exists") from exc

        logger.debug("created category %s (%s)", created.name, created.id)
        return created

    def create_transaction_with_splits(
        self,
        household_id: UUID,
        *,
        date: date,
        description: str,
        amount: Decimal,
        transaction_type: TransactionType,
        paid_by_member_id: UUID | None,
        paid_to_member_id: UUID | None,
        category_id: UUID | None,
        split_type: SplitType,
        paid_by_type: PaidByType,
        split_member_id: UUID | None,
        reimburses_transaction_id: UUID | None,
        excluded_from_budget: bool,
        notes: str | None,
        created_by_user_id: UUID | None,
        splits: Sequence[MemberSplit] | None,
    ) -> UUID:
        if not description.strip():
            raise CommitError("Description cannot be empty")
        amount = quantize_2(amount)
        if amount <= 0:
            raise CommitError("Amount must be greater than zero")

        try:
            with session_scope(database_url=self.database_url) as session:
                self._require_household(session, household_id)
                members = self._household_members(session, household_id)
                for label, member_id in (
                    ("paid by", paid_by_member_id),
                    ("paid to", paid_to_member_id),
                    ("split", split_member_id),
                ):
                    if member_id is not None and member_id not in members:
                        raise CommitError(f"Unknown {label} member {member_id}")
                if category_id is not None:
                    cat = session.get(HhCategory, category_id)
                    if cat is None or cat.household_id != household_id:
                        raise CommitError(f"Unknown category {category_id}")
                if reimburses_transaction_id is not None:
                    target = session.get(HhTransaction, reimburses_transaction_id)
                    if target is None or target.household_id != household_id:
                        raise CommitError(
                            f"Reimbursed transaction {reimburses_transaction_id} not found"
                        )

                if splits is None:
                    allocation = default_splits(
                        amount=amount,
                        split_type=split_type,
                        members=[m for m in members.values() if m.is_active],
                        paid_by_member_id=paid_by_member_id,
                        split_member_id=split_member_id,
                    )
                else:
                    allocation = list(splits)
                for s in allocation:
                    if s.member_id not in members:
                        raise CommitError(f"Unknown split member {s.member_id}")

                tx = HhTransaction(
                    household_id=household_id,
                    date=date,
                    description=description,
                    amount=amount,
                    transaction_type=str(transaction_type),
                    paid_by_member_id=paid_by_member_id,
                    paid_to_member_id=paid_to_member_id,
                    category_id=category_id,
                    split_type=str(split_type),
                    paid_by_type=str(paid_by_type),
                    split_member_id=split_member_id,
                    reimburses_transaction_id=reimburses_transaction_id,
                    excluded_from_budget=excluded_from_budget,
                    notes=notes,
                    created_by_user_id=created_by_user_id,
                )
                tx.splits = [
                    HhTransactionSplit(
                        member_id=s.member_id,
                        position=i,
                        owed_amount=quantize_2(s.owed_amount),
                        owed_percentage=quantize_2(s.owed_percentage),
                        paid_amount=quantize_2(s.paid_amount),
                        paid_percentage=quantize_2(s.paid_percentage),
                    )
                    for i, s in enumerate(allocation)
                ]
                session.add(tx)
                session.flush()
                tx_id = tx.id
        except IntegrityError as exc:
            raise CommitError(f"Transaction rejected by database: {exc.orig}") from exc

        return tx_id

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _require_household(session: Session, household_id: UUID) -> None:
        if session.get(HhHousehold, household_id) is None:
            raise CommitError(f"Household {household_id} not found")

    @staticmethod
    def _household_members(session: Session, household_id: UUID) -> dict[UUID, Member]:
        rows = session.execute(
            select(HhMember)
            .where(HhMember.household_id == household_id)
            .order_by(HhMember.created_at, HhMember.display_name)
        ).scalars()
        return {r.id: Member.model_validate(r) for r in rows}


__all__ = ["HouseholdBackend", "SqlAlchemyBackend", "default_splits"]
