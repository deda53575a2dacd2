from typing import Annotated

from fastapi import APIRouter, Depends

from finance_tracker.api.dependencies import CurrentPrincipal, get_transaction_service
from finance_tracker.api.schemas import ClearedOut, MessageOut, TransactionOut
from finance_tracker.models import BalanceAmounts, TransactionDraft
from finance_tracker.services.transactions import TransactionService

router = APIRouter(tags=["transactions"])

Transactions = Annotated[TransactionService, Depends(get_transaction_service)]


@router.post("/transactions", status_code=201, response_model=TransactionOut)
async def create_transaction(
    draft: TransactionDraft,
    principal: CurrentPrincipal,
    service: Transactions,
) -> TransactionOut:
    transaction = await service.create(principal.id, draft)
    return TransactionOut.from_transaction(transaction)


@router.get("/transactions", response_model=list[TransactionOut])
async def list_transactions(
    principal: CurrentPrincipal,
    service: Transactions,
) -> list[TransactionOut]:
    transactions = await service.list_for_owner(principal.id)
    return [TransactionOut.from_transaction(t) for t in transactions]


@router.get("/transactions/totals", response_model=BalanceAmounts)
async def get_totals(
    principal: CurrentPrincipal,
    service: Transactions,
) -> BalanceAmounts:
    totals = await service.totals(principal.id)
    return totals.to_balance()


@router.delete("/transactions/{transaction_id}", response_model=MessageOut)
async def delete_transaction(
    transaction_id: str,
    principal: CurrentPrincipal,
    service: Transactions,
) -> MessageOut:
    await service.delete(principal.id, transaction_id)
    return MessageOut(message="Deleted")


@router.delete("/transactions", response_model=ClearedOut)
async def clear_transactions(
    principal: CurrentPrincipal,
    service: Transactions,
) -> ClearedOut:
    deleted = await service.delete_all(principal.id)
    return ClearedOut(message="All transactions cleared for current user", deleted=deleted)
