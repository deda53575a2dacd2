from datetime import datetime, timezone
from decimal import Decimal

import pytest
from conftest import FIXED_NOW

from finance_tracker.core.errors import NotFoundError, ValidationError
from finance_tracker.models import CategoryGroup, TransactionDraft, TransactionType
from finance_tracker.services.transactions import TransactionService
from finance_tracker.storage.transactions import TransactionStore


def _service(store: TransactionStore, default_timezone: str = "UTC") -> TransactionService:
    return TransactionService(store, default_timezone=default_timezone, clock=lambda: FIXED_NOW)


@pytest.mark.anyio
async def test_create_applies_defaults(store: TransactionStore, alice: str) -> None:
    tx = await _service(store).create(alice, TransactionDraft(type=TransactionType.expense, amount=Decimal("12")))

    assert tx.owner == alice
    assert tx.category == ""
    assert tx.category_group is None
    assert tx.note == ""
    assert tx.occurred_at == FIXED_NOW
    assert tx.created_at == FIXED_NOW


@pytest.mark.anyio
async def test_create_keeps_optional_fields(store: TransactionStore, alice: str) -> None:
    draft = TransactionDraft.model_validate(
        {
            "type": "expense",
            "amount": 42.5,
            "category": "  Groceries ",
            "categoryGroup": "home_share",
            "note": "market",
            "date": "2024-06-01",
        }
    )
    tx = await _service(store).create(alice, draft)

    assert tx.category == "Groceries"
    assert tx.category_group is CategoryGroup.home_share
    assert tx.note == "market"
    assert tx.amount == Decimal("42.50")
    assert tx.occurred_at == datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.mark.anyio
@pytest.mark.parametrize(
    "draft",
    [
        TransactionDraft(amount=Decimal("1")),
        TransactionDraft(type=TransactionType.income),
        TransactionDraft(),
    ],
)
async def test_create_requires_type_and_amount(store: TransactionStore, alice: str, draft: TransactionDraft) -> None:
    with pytest.raises(ValidationError, match="type and amount are required"):
        await _service(store).create(alice, draft)
    assert store.list_for_owner(alice) == []


@pytest.mark.anyio
@pytest.mark.parametrize("kind", [TransactionType.income, TransactionType.expense])
async def test_future_income_and_expense_are_rejected(store: TransactionStore, alice: str, kind: TransactionType) -> None:
    with pytest.raises(ValidationError, match="Future-dated"):
        await _service(store).create(alice, TransactionDraft(type=kind, amount=Decimal("5"), date="2024-06-13"))


@pytest.mark.anyio
async def test_future_savings_are_allowed(store: TransactionStore, alice: str) -> None:
    tx = await _service(store).create(
        alice,
        TransactionDraft(type=TransactionType.savings, amount=Decimal("5"), date="2024-09-01"),
    )
    assert tx.occurred_at == datetime(2024, 9, 1, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_later_today_is_not_future(store: TransactionStore, alice: str) -> None:
    tx = await _service(store).create(
        alice,
        TransactionDraft(type=TransactionType.income, amount=Decimal("5"), date="2024-06-12T23:59:00"),
    )
    assert tx.occurred_at == datetime(2024, 6, 12, 23, 59, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_tomorrow_is_judged_in_server_timezone(store: TransactionStore, alice: str) -> None:
    # 10:30 UTC is 22:30 in Auckland; tomorrow there starts at 12:00 UTC.
    auckland = _service(store, "Pacific/Auckland")
    with pytest.raises(ValidationError):
        await auckland.create(alice, TransactionDraft(type=TransactionType.income, amount=Decimal("1"), date="2024-06-13"))

    tx = await auckland.create(alice, TransactionDraft(type=TransactionType.income, amount=Decimal("1"), date="2024-06-12"))
    assert tx.occurred_at == datetime(2024, 6, 11, 12, tzinfo=timezone.utc)

    # Same instant is fine in UTC, where it is still the 12th.
    late = await _service(store).create(
        alice,
        TransactionDraft(type=TransactionType.income, amount=Decimal("1"), date="2024-06-12T12:00:00Z"),
    )
    assert late.occurred_at == datetime(2024, 6, 12, 12, tzinfo=timezone.utc)


@pytest.mark.anyio
@pytest.mark.parametrize("raw", ["yesterday", "2024-13-45", "", "   "])
async def test_unparseable_date_falls_back_to_now(store: TransactionStore, alice: str, raw: str) -> None:
    tx = await _service(store).create(alice, TransactionDraft(type=TransactionType.expense, amount=Decimal("1"), date=raw))
    assert tx.occurred_at == FIXED_NOW


@pytest.mark.anyio
async def test_amount_is_rounded_to_cents(store: TransactionStore, alice: str) -> None:
    tx = await _service(store).create(alice, TransactionDraft(type=TransactionType.expense, amount=Decimal("10.555")))
    assert tx.amount == Decimal("10.56")


def test_negative_amount_is_rejected_by_the_draft() -> None:
    with pytest.raises(ValueError):
        TransactionDraft(type=TransactionType.expense, amount=Decimal("-1"))


@pytest.mark.anyio
async def test_delete_is_owner_scoped(store: TransactionStore, alice: str, bob: str) -> None:
    service = _service(store)
    tx = await service.create(alice, TransactionDraft(type=TransactionType.income, amount=Decimal("3")))

    with pytest.raises(NotFoundError):
        await service.delete(bob, tx.id)

    await service.delete(alice, tx.id)
    with pytest.raises(NotFoundError):
        await service.delete(alice, tx.id)


@pytest.mark.anyio
async def test_delete_all_and_totals(store: TransactionStore, alice: str, bob: str) -> None:
    service = _service(store)
    await service.create(alice, TransactionDraft(type=TransactionType.income, amount=Decimal("100")))
    await service.create(alice, TransactionDraft(type=TransactionType.expense, amount=Decimal("30")))
    await service.create(alice, TransactionDraft(type=TransactionType.savings, amount=Decimal("10")))
    await service.create(bob, TransactionDraft(type=TransactionType.income, amount=Decimal("7")))

    totals = await service.totals(alice)
    assert (totals.income, totals.expense, totals.savings, totals.balance) == (100, 30, 10, 60)

    assert await service.delete_all(alice) == 3
    assert (await service.totals(alice)).balance == 0
    assert (await service.totals(bob)).income == 7
    assert await service.delete_all(alice) == 0


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("kind", "raw"),
    [
        (TransactionType.savings, "9999-12-31"),
        (TransactionType.savings, "2101-01-01T00:00:00Z"),
        (TransactionType.income, "0001-01-01"),
        (TransactionType.expense, "1899-06-01"),
    ],
)
async def test_dates_outside_supported_years_are_rejected(
    store: TransactionStore,
    alice: str,
    kind: TransactionType,
    raw: str,
) -> None:
    service = _service(store, "Asia/Tokyo")
    with pytest.raises(ValidationError, match="between 1900 and 2100"):
        await service.create(alice, TransactionDraft(type=kind, amount=Decimal("5"), date=raw))
    assert store.list_for_owner(alice) == []


@pytest.mark.anyio
async def test_numeric_date_falls_back_to_now(store: TransactionStore, alice: str) -> None:
    draft = TransactionDraft.model_validate({"type": "expense", "amount": 3, "date": 1700000000})
    tx = await _service(store).create(alice, draft)
    assert tx.occurred_at == FIXED_NOW
