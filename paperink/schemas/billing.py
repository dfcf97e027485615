# =========================================================
# FILE: /paperink/schemas/billing.py
# =========================================================

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict


class CheckoutRequest(BaseModel):
    type: Literal["subscription", "credits"]
    priceId: Optional[str] = None
    packageId: Optional[str] = None
    successUrl: Optional[str] = None
    cancelUrl: Optional[str] = None


class CheckoutResponse(BaseModel):
    sessionId: str
    url: Optional[str] = None


class ManageSubscriptionRequest(BaseModel):
    action: Literal["cancel", "reactivate", "portal"]
    returnUrl: Optional[str] = None


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    plan_type: str
    price_amount: Optional[int] = None
    currency: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool


class CreditsResponse(BaseModel):
    credits: int
    has_active_subscription: bool
    subscription: Optional[SubscriptionResponse] = None


class CreditPackageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    credits: int
    price_amount: int
    currency: str
