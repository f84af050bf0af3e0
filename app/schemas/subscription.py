"""
Pydantic schemas for plans, quotas and checkout
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class QuotaSnapshotResponse(BaseModel):
    notes_count: int
    folders_count: int
    note_limit: Optional[int] = None  # None = unlimited
    folder_limit: Optional[int] = None


class SubscriptionStatusResponse(BaseModel):
    plan: str
    status: str
    is_entitled: bool
    period_end: Optional[datetime] = None
    payment_status: Optional[str] = None
    quota: QuotaSnapshotResponse


class ProvisionResponse(BaseModel):
    created: bool
    plan: str
    status: str


class CheckoutSessionRequest(BaseModel):
    price_or_product_ref: Optional[str] = None
    return_url: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    url: str
