"""
Money transfer endpoints
"""

from fastapi import APIRouter, Depends, status

from ..store import LedgerStore
from .deps import get_store
from .schemas import TransferPreviewModel, TransferRequest, TransferResponse


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transfer(
    request: TransferRequest,
    store: LedgerStore = Depends(get_store)
):
    """Send money to another account by account number"""
    result = store.transfer(
        request.from_account_id,
        request.to_account_number,
        request.amount,
        request.description
    )
    return TransferResponse.from_result(result).model_dump()


@router.get("/preview")
async def preview_transfer(
    account_id: str,
    amount: str,
    store: LedgerStore = Depends(get_store)
):
    """Balance left after sending ``amount``; nothing is moved"""
    return TransferPreviewModel.from_preview(store.transfer_preview(account_id, amount)).model_dump()
