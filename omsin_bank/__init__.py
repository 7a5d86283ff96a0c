"""
Omsin Financial Ledger

A demonstration personal-banking backend: accounts, transaction history,
profile editing and money transfers settled against a pluggable storage
backend with exact Decimal arithmetic.
"""

__version__ = "1.0.0"
