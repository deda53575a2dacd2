import asyncio
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from finance_tracker.core.errors import NotFoundError, ValidationError
from finance_tracker.domain.aggregation import ClassTotals
from finance_tracker.domain.buckets import BucketSpec, BucketUnit, resolve_timezone
from finance_tracker.domain.timestamps import parse_occurred_at, utc_now
from finance_tracker.logger import get_logger
from finance_tracker.models import Transaction, TransactionDraft, TransactionType
from finance_tracker.storage.transactions import TransactionStore

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Only these may not be dated after today; savings can be planned ahead.
NO_FUTURE_TYPES = frozenset({TransactionType.income, TransactionType.expense})


class TransactionService:
    def __init__(
        self,
        store: TransactionStore,
        *,
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.default_timezone = default_timezone
        self.clock = clock

    async def create(self, owner_id: str, draft: TransactionDraft) -> Transaction:
        if draft.type is None or draft.amount is None:
            raise ValidationError("type and amount are required")

        tz = resolve_timezone(None, self.default_timezone)
        now = self.clock()
        occurred_at = parse_occurred_at(draft.date, tz, now)

        if draft.type in NO_FUTURE_TYPES:
            _, start_of_tomorrow = BucketSpec(BucketUnit.day, tz).bounds(now)
            if occurred_at >= start_of_tomorrow:
                raise ValidationError("Future-dated income/expense is not allowed")

        transaction = await asyncio.to_thread(
            self.store.create,
            owner_id,
            type=draft.type,
            amount=draft.amount.quantize(CENT, rounding=ROUND_HALF_UP),
            occurred_at=occurred_at,
            created_at=now,
            category=(draft.category or "").strip(),
            category_group=draft.category_group,
            note=draft.note or "",
        )
        logger.info(
            "[TX] Created %s %s for owner %s (%s).",
            transaction.type.value,
            transaction.amount,
            owner_id,
            transaction.id,
        )
        return transaction

    async def list_for_owner(self, owner_id: str) -> list[Transaction]:
        return await asyncio.to_thread(self.store.list_for_owner, owner_id)

    async def delete(self, owner_id: str, transaction_id: str) -> None:
        deleted = await asyncio.to_thread(self.store.delete_one, owner_id, transaction_id)
        if not deleted:
            raise NotFoundError()
        logger.info("[TX] Deleted %s for owner %s.", transaction_id, owner_id)

    async def delete_all(self, owner_id: str) -> int:
        count = await asyncio.to_thread(self.store.delete_all, owner_id)
        logger.info("[TX] Cleared %d transactions for owner %s.", count, owner_id)
        return count

    async def totals(self, owner_id: str) -> ClassTotals:
        raw = await asyncio.to_thread(self.store.totals_by_class, owner_id)
        return ClassTotals.from_mapping(raw)
