"""Pydantic models for TzKT API responses."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Account(BaseModel):
    """Address reference embedded in TzKT records."""
    address: str
    alias: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class BakeryOperation(BaseModel):
    """Staking operation from /v1/operations/staking."""
    level: int
    timestamp: datetime
    action: str  # stake, unstake, finalize
    amount: int = 0

    model_config = ConfigDict(extra="allow")


class TransactionParameter(BaseModel):
    entrypoint: str
    value: Any = None

    model_config = ConfigDict(extra="allow")


class ProxyTransaction(BaseModel):
    """Contract call from /v1/operations/transactions."""
    level: int
    timestamp: datetime
    hash: str
    counter: int
    amount: int = 0  # mutez sent with the call
    parameter: Optional[TransactionParameter] = None
    sender: Optional[Account] = None

    model_config = ConfigDict(extra="allow")

    @property
    def entrypoint(self) -> Optional[str]:
        return self.parameter.entrypoint if self.parameter else None

    @property
    def sender_address(self) -> Optional[str]:
        return self.sender.address if self.sender else None


class TokenHolder(BaseModel):
    """Token balance row from /v1/tokens/balances."""
    account: Account
    balance: str = Field(..., description="Raw token units as a decimal string")

    model_config = ConfigDict(extra="allow")
