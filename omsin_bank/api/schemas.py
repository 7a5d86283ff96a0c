"""
Pydantic schemas for API requests and responses
"""

from typing import List, Optional, Union
from pydantic import BaseModel, Field

from ..currency import Money
from ..accounts import Account
from ..transactions import Transaction, TransactionTotals
from ..transfers import TransferPreview, TransferResult
from ..store import AccountSummary


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (USD, EUR, etc.)")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


# Requests
# Fields are optional; blank input is rejected by the ledger validation

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class TransferRequest(BaseModel):
    from_account_id: str
    to_account_number: Optional[str] = None
    amount: Optional[Union[str, int, float]] = Field(None, description="Amount as entered, e.g. \"100.00\"")
    description: Optional[str] = None


# Responses

class AccountModel(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    account_number: str
    account_type: str
    balance: MoneyModel
    created_at: str
    updated_at: str

    @classmethod
    def from_account(cls, account: Account) -> 'AccountModel':
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            address=account.address,
            account_number=account.account_number,
            account_type=account.account_type.value,
            balance=MoneyModel.from_money(account.balance),
            created_at=account.created_at.isoformat(),
            updated_at=account.updated_at.isoformat()
        )


class RecipientModel(BaseModel):
    """Another account as shown in the transfer picker; no balance"""
    id: str
    name: str
    account_number: str

    @classmethod
    def from_account(cls, account: Account) -> 'RecipientModel':
        return cls(id=account.id, name=account.name, account_number=account.account_number)


class TransactionModel(BaseModel):
    id: str
    account_id: str
    type: str
    amount: MoneyModel
    description: str
    date: str
    balance: MoneyModel

    @classmethod
    def from_transaction(cls, txn: Transaction) -> 'TransactionModel':
        return cls(
            id=txn.id,
            account_id=txn.account_id,
            type=txn.transaction_type.value,
            amount=MoneyModel.from_money(txn.amount),
            description=txn.description,
            date=txn.date.isoformat(),
            balance=MoneyModel.from_money(txn.balance)
        )


class TotalsModel(BaseModel):
    credits: MoneyModel
    debits: MoneyModel
    net: MoneyModel
    count: int

    @classmethod
    def from_totals(cls, totals: TransactionTotals) -> 'TotalsModel':
        return cls(
            credits=MoneyModel.from_money(totals.credits),
            debits=MoneyModel.from_money(totals.debits),
            net=MoneyModel.from_money(totals.net),
            count=totals.count
        )


class TransactionListModel(BaseModel):
    transactions: List[TransactionModel]
    totals: TotalsModel


class AccountSummaryModel(BaseModel):
    account: AccountModel
    recent_transactions: List[TransactionModel]
    totals: TotalsModel
    monthly_change: MoneyModel

    @classmethod
    def from_summary(cls, summary: AccountSummary) -> 'AccountSummaryModel':
        return cls(
            account=AccountModel.from_account(summary.account),
            recent_transactions=[TransactionModel.from_transaction(t) for t in summary.recent_transactions],
            totals=TotalsModel.from_totals(summary.totals),
            monthly_change=MoneyModel.from_money(summary.monthly_change)
        )


class TransferResponse(BaseModel):
    message: str
    amount: MoneyModel
    sender: AccountModel
    recipient: RecipientModel
    debit: TransactionModel
    credit: TransactionModel

    @classmethod
    def from_result(cls, result: TransferResult) -> 'TransferResponse':
        return cls(
            message=result.message,
            amount=MoneyModel.from_money(result.amount),
            sender=AccountModel.from_account(result.sender),
            recipient=RecipientModel.from_account(result.recipient),
            debit=TransactionModel.from_transaction(result.debit),
            credit=TransactionModel.from_transaction(result.credit)
        )


class TransferPreviewModel(BaseModel):
    amount: MoneyModel
    available_balance: MoneyModel
    remaining_balance: MoneyModel
    sufficient_funds: bool

    @classmethod
    def from_preview(cls, preview: TransferPreview) -> 'TransferPreviewModel':
        return cls(
            amount=MoneyModel.from_money(preview.amount),
            available_balance=MoneyModel.from_money(preview.available_balance),
            remaining_balance=MoneyModel.from_money(preview.remaining_balance),
            sufficient_funds=preview.sufficient_funds
        )


class ErrorModel(BaseModel):
    error: str
    message: str
