"""Display formatting for tez amounts and addresses."""
from __future__ import annotations

TEZ_SYMBOL = "ꜩ"


def format_tez(amount: float) -> str:
    """1234.5 -> '1,234.50 ꜩ'"""
    return f"{amount:,.2f} {TEZ_SYMBOL}"


def format_signed_tez(amount: float) -> str:
    sign = "+" if amount >= 0 else ""
    return f"{sign}{format_tez(amount)}"


def format_number(num: int) -> str:
    return f"{num:,}"


def shorten_address(address: str) -> str:
    """tz1abcdefghij...xyz1 -> tz1abc...xyz1"""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
