"""
Login session endpoints
"""

from fastapi import APIRouter, Depends

from ..store import LedgerStore
from .deps import get_store
from .schemas import AccountModel, LoginRequest


router = APIRouter()


@router.post("/login")
async def login(
    request: LoginRequest,
    store: LedgerStore = Depends(get_store)
):
    """Log in with a demo email/password pair"""
    account = store.authenticate(request.email, request.password)
    return {
        "message": f"Welcome back, {account.name}",
        "account": AccountModel.from_account(account).model_dump()
    }


@router.post("/logout")
async def logout(store: LedgerStore = Depends(get_store)):
    """End the current session"""
    was_logged_in = store.logout()
    return {"logged_out": was_logged_in}


@router.get("/me")
async def current_account(store: LedgerStore = Depends(get_store)):
    """The logged-in account as currently stored"""
    account = store.require_current_account()
    return AccountModel.from_account(account).model_dump()
