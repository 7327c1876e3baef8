from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenSpendRequest(BaseModel):
    action: str = Field(..., min_length=1)
    role: str = "team"
    player_id: Optional[str] = None


class TokenCreditRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: Optional[str] = None


class TokenBalanceResponse(BaseModel):
    user_id: str
    balance: int
    lifetime_purchased: int
    lifetime_spent: int
    updated_at: datetime


class TokenTransactionResponse(BaseModel):
    transaction_id: str
    amount: int
    type: str
    action: str
    description: Optional[str] = None
    player_id: Optional[str] = None
    balance_after: int
    created_at: datetime


class TokenCostResponse(BaseModel):
    action: str
    cost: int
    description: str
