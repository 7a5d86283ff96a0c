"""
Transaction history endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from ..errors import ValidationError
from ..store import LedgerStore
from .deps import get_store
from .schemas import TotalsModel, TransactionListModel, TransactionModel


router = APIRouter()

SORT_ORDERS = {"newest": True, "oldest": False}


@router.get("/{account_id}/transactions")
async def get_account_transactions(
    account_id: str,
    type: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "newest",
    limit: Optional[int] = None,
    store: LedgerStore = Depends(get_store)
):
    """Transaction history filtered by type and description text"""
    if sort not in SORT_ORDERS:
        raise ValidationError(f"Unknown sort order: {sort}")

    transactions = store.list_transactions(
        account_id,
        transaction_type=type,
        search=search,
        newest_first=SORT_ORDERS[sort],
        limit=limit
    )

    return TransactionListModel(
        transactions=[TransactionModel.from_transaction(t) for t in transactions],
        totals=TotalsModel.from_totals(store.transaction_totals(account_id))
    ).model_dump()
