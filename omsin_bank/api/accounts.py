"""
Account endpoints
"""

from fastapi import APIRouter, Depends

from ..store import LedgerStore
from .deps import get_store
from .schemas import AccountModel, AccountSummaryModel, RecipientModel, UpdateProfileRequest


router = APIRouter()


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    store: LedgerStore = Depends(get_store)
):
    """Get account details"""
    return AccountModel.from_account(store.get_account(account_id)).model_dump()


@router.get("/{account_id}/summary")
async def get_account_summary(
    account_id: str,
    store: LedgerStore = Depends(get_store)
):
    """Balance, recent activity, totals and monthly change for the dashboard"""
    return AccountSummaryModel.from_summary(store.account_summary(account_id)).model_dump()


@router.get("/{account_id}/recipients")
async def list_recipients(
    account_id: str,
    store: LedgerStore = Depends(get_store)
):
    """Accounts this account can send money to"""
    recipients = store.list_recipients(account_id)
    return {"recipients": [RecipientModel.from_account(a).model_dump() for a in recipients]}


@router.put("/{account_id}/profile")
async def update_profile(
    account_id: str,
    request: UpdateProfileRequest,
    store: LedgerStore = Depends(get_store)
):
    """Update name, email, phone and address"""
    account = store.update_profile(
        account_id,
        name=request.name,
        email=request.email,
        phone=request.phone,
        address=request.address
    )
    return {
        "message": "Profile updated successfully",
        "account": AccountModel.from_account(account).model_dump()
    }
