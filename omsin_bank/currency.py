"""
Money Module

Currency codes with their minor-unit precision, an immutable Money value and
parsing of user-entered amounts. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    USD = ("USD", 2)  # US Dollar, 2 decimal places
    EUR = ("EUR", 2)  # Euro, 2 decimal places
    GBP = ("GBP", 2)  # British Pound, 2 decimal places
    JPY = ("JPY", 0)  # Japanese Yen, 0 decimal places
    
    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision
    
    @property
    def minor_unit(self) -> Decimal:
        return Decimal('0.1') ** self.precision


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    All monetary values MUST use this class or raw Decimal.
    """
    amount: Decimal
    currency: Currency = Currency.USD
    
    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        
        # Round to currency precision
        rounded = self.amount.quantize(self.currency.minor_unit, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', rounded)
    
    def _check_currency(self, other: 'Money') -> None:
        if self.currency != other.currency:
            raise ValueError(f"Currency mismatch: {self.currency.code} and {other.currency.code}")
    
    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)
    
    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)
    
    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency
    
    def __hash__(self):
        return hash((self.amount, self.currency))
    
    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount < other.amount
    
    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount <= other.amount
    
    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount > other.amount
    
    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount >= other.amount
    
    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')
    
    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')
    
    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')
    
    def to_string(self) -> str:
        """Format for display"""
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"
    
    @classmethod
    def zero(cls, currency: Currency = Currency.USD) -> 'Money':
        return cls(Decimal('0'), currency)


def parse_amount(value: Union[str, int, float, Decimal], currency: Currency = Currency.USD) -> Decimal:
    """
    Convert a user-entered amount to an exact Decimal.
    
    Accepts strings (currency symbols, whitespace and thousands separators are
    stripped), ints, floats and Decimals. Floats go through their shortest
    repr so 0.1 becomes Decimal('0.1').
    
    Raises:
        ValueError: If the value is empty, not numeric, not finite, or has
            more decimal places than the currency's minor unit

    Magnitude is not checked here. Values far beyond a currency's range cannot
    be quantized into Money, so compare against a limit before converting.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        clean_value = value.strip().replace('$', '').replace(',', '').replace(' ', '')
        if not clean_value:
            raise ValueError("Amount is required")
        try:
            amount = Decimal(clean_value)
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to an amount")
    else:
        raise ValueError("Amount must be a number")
    
    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")
    
    # Read the digits directly; normalize() would round huge values to context precision
    _, digits, exponent = amount.as_tuple()
    while exponent < -currency.precision and len(digits) > 1 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    if exponent < -currency.precision:
        raise ValueError(f"Amount cannot have more than {currency.precision} decimal places")
    
    return amount
