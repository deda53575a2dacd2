from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Select, delete, func, select

from finance_tracker.domain.buckets import BucketSpec
from finance_tracker.domain.timestamps import to_naive_utc
from finance_tracker.logger import get_logger
from finance_tracker.models import CategoryGroup, Transaction, TransactionType
from finance_tracker.storage.database import Database
from finance_tracker.storage.tables import TransactionRow

logger = get_logger(__name__)


def _from_storage(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


def _to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        owner=row.owner_id,
        type=row.type,
        amount=row.amount,
        category=row.category,
        category_group=row.category_group,
        note=row.note,
        occurred_at=_from_storage(row.occurred_at),
        created_at=_from_storage(row.created_at),
    )


def _within(stmt: Select, start: datetime | None, end: datetime | None) -> Select:
    if start is not None:
        stmt = stmt.where(TransactionRow.occurred_at >= to_naive_utc(start))
    if end is not None:
        stmt = stmt.where(TransactionRow.occurred_at < to_naive_utc(end))
    return stmt


class TransactionStore:
    """Owner-scoped access to stored transactions.

    Every query filters on ``owner_id``; ranges are half-open ``[start, end)``.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def create(
        self,
        owner_id: str,
        *,
        type: TransactionType,
        amount: Decimal,
        occurred_at: datetime,
        created_at: datetime,
        category: str = "",
        category_group: CategoryGroup | None = None,
        note: str = "",
    ) -> Transaction:
        with self.database.session_scope() as session:
            row = TransactionRow(
                owner_id=owner_id,
                type=type,
                amount=amount,
                category=category,
                category_group=category_group,
                note=note,
                occurred_at=to_naive_utc(occurred_at),
                created_at=to_naive_utc(created_at),
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return _to_transaction(row)

    def list_for_owner(self, owner_id: str) -> list[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.owner_id == owner_id)
            .order_by(TransactionRow.occurred_at.desc(), TransactionRow.created_at.desc())
        )
        with self.database.session_scope() as session:
            return [_to_transaction(row) for row in session.scalars(stmt)]

    def delete_one(self, owner_id: str, transaction_id: str) -> bool:
        stmt = delete(TransactionRow).where(
            TransactionRow.id == transaction_id,
            TransactionRow.owner_id == owner_id,
        )
        with self.database.session_scope() as session:
            result = session.execute(stmt)
            return bool(result.rowcount)

    def delete_all(self, owner_id: str) -> int:
        stmt = delete(TransactionRow).where(TransactionRow.owner_id == owner_id)
        with self.database.session_scope() as session:
            result = session.execute(stmt)
            return int(result.rowcount or 0)

    def first_occurred_at(self, owner_id: str) -> datetime | None:
        return self._occurred_at_bound(owner_id, func.min)

    def last_occurred_at(self, owner_id: str) -> datetime | None:
        return self._occurred_at_bound(owner_id, func.max)

    def _occurred_at_bound(self, owner_id: str, fn) -> datetime | None:
        stmt = select(fn(TransactionRow.occurred_at)).where(TransactionRow.owner_id == owner_id)
        with self.database.session_scope() as session:
            value = session.scalar(stmt)
        return _from_storage(value) if value is not None else None

    def totals_by_class(
        self,
        owner_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[TransactionType, Decimal]:
        stmt = (
            select(TransactionRow.type, func.sum(TransactionRow.amount).label("total"))
            .where(TransactionRow.owner_id == owner_id)
            .group_by(TransactionRow.type)
        )
        stmt = _within(stmt, start, end)
        with self.database.session_scope() as session:
            return {row.type: Decimal(row.total or 0) for row in session.execute(stmt)}

    def sum_by_bucket(
        self,
        owner_id: str,
        spec: BucketSpec,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, dict[TransactionType, Decimal]]:
        """Sum amounts grouped by (bucket key, type).

        Only buckets holding at least one record appear in the result.
        Keys are computed in Python because bucket boundaries depend on the
        requested timezone, which the SQL dialects handle inconsistently.
        """
        stmt = (
            select(TransactionRow.occurred_at, TransactionRow.type, TransactionRow.amount)
            .where(TransactionRow.owner_id == owner_id)
            .order_by(TransactionRow.occurred_at)
        )
        stmt = _within(stmt, start, end)

        buckets: dict[str, dict[TransactionType, Decimal]] = defaultdict(dict)
        rows = 0
        with self.database.session_scope() as session:
            for occurred_at, kind, amount in session.execute(stmt):
                key = spec.key(_from_storage(occurred_at))
                bucket = buckets[key]
                bucket[kind] = bucket.get(kind, Decimal(0)) + Decimal(amount)
                rows += 1

        logger.debug(
            "[DB] Bucketed %d rows into %d %s buckets for owner %s.",
            rows,
            len(buckets),
            spec.unit.value,
            owner_id,
        )
        return dict(buckets)
