from datetime import datetime
from pydantic import BaseModel, Field


class PlanOut(BaseModel):
    name: str
    price: int
    features: list[str]
    available: bool = Field(..., description="False when no Stripe price id is configured")


class CheckoutRequest(BaseModel):
    plan: str | None = None


class CheckoutResponse(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    url: str | None = None

    class Config:
        populate_by_name = True


class PortalResponse(BaseModel):
    url: str


class SubscriptionOut(BaseModel):
    id: str
    plan: str
    status: str
    stripe_subscription_id: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True
