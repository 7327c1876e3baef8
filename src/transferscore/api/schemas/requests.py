from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FederationRequestCreate(BaseModel):
    player_id: str = Field(..., min_length=1)
    team_id: str = Field(default="demo-team", min_length=1)
    purpose: str = ""
    destination_country: str = ""
    target_club: Optional[str] = None
    notes: Optional[str] = None
    actor_id: Optional[str] = None


class PaymentConfirmation(BaseModel):
    payment_id: str = Field(..., min_length=1)
    actor_id: Optional[str] = None


class TransitionRequest(BaseModel):
    actor_id: Optional[str] = None
    issued_document_name: Optional[str] = None


class RejectionRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1)
    actor_id: Optional[str] = None


class RequestActivityResponse(BaseModel):
    previous_status: Optional[str]
    new_status: str
    actor_id: Optional[str]
    description: str
    created_at: datetime


class FederationRequestResponse(BaseModel):
    request_id: str
    request_number: str
    player_id: str
    team_id: str
    status: str
    payment_status: str
    payment_id: Optional[str] = None
    fee_amount: float
    service_charge: float
    total_amount: float
    details: dict
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    activities: List[RequestActivityResponse] = Field(default_factory=list)


class FederationRequestSummary(BaseModel):
    total: int
    pending: int
    submitted: int
    processing: int
    issued: int
    rejected: int
