from datetime import datetime
from pydantic import BaseModel
from app.models.user import PlanTier


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None = None
    plan: PlanTier = PlanTier.FREE
    created_at: datetime

    class Config:
        from_attributes = True


class RegisterRequest(BaseModel):
    """Sent by the identity provider webhook (or the frontend) after sign-up / profile change."""
    id: str | None = None
    email: str | None = None
    name: str | None = None


class TokenPayload(BaseModel):
    sub: str  # user id issued by the identity provider
    email: str | None = None
    exp: int | None = None
