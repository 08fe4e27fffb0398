"""
Read Models for External Data

These are the shapes the closing engine reads from the rest of the
application (transactions, wallets). The engine never writes them.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DateRange(BaseModel):
    """Inclusive date range [start, end]."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class TransactionRecord(BaseModel):
    """A transaction as seen by the snapshot and checklist."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(
        ...,
        description="Transaction amount (always positive, direction given by type)"
    )
    type: str = Field(
        ...,
        description="'income' or 'expense'"
    )
    subtype: Optional[str] = Field(
        default=None,
        description="e.g. 'transfer', 'cash_adjustment'"
    )
    category: Optional[str] = None
    transaction_date: Optional[date] = None

    @field_validator('type', 'subtype', mode='before')
    @classmethod
    def normalize_case(cls, v):
        """Source data mixes 'INCOME' and 'income'."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def is_income(self) -> bool:
        return self.type == "income"

    @property
    def is_categorized(self) -> bool:
        return bool(self.category and self.category.strip())


class WalletRecord(BaseModel):
    """A wallet/account and its current balance."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str
    type: str
    balance: Decimal = Decimal("0")
    currency: Optional[str] = None
    is_active: bool = True
