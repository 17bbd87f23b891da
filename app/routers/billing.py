"""
Stripe billing: plans, checkout, customer portal, current subscription, webhook.
Billing is disabled (503) until STRIPE_SECRET_KEY is set.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Header, Request, status
from sqlalchemy.orm import Session
from app.auth import get_current_user_id
from app.config import Settings, get_settings
from app.database import get_db
from app.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    PlanOut,
    PortalResponse,
    SubscriptionOut,
)
from app.services import billing_service
from app.services.errors import BillingError, BillingNotConfiguredError, UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["billing"])
webhook_router = APIRouter(prefix="/api/webhooks", tags=["billing"])


@router.get("/plans", response_model=dict[str, PlanOut])
def list_plans(settings: Settings = Depends(get_settings)):
    """Subscription plans; `available` is false when no Stripe price is configured."""
    return billing_service.list_plans(settings)


@router.post("/create-checkout", response_model=CheckoutResponse)
def create_checkout(
    body: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a Stripe Checkout session for a subscription plan."""
    try:
        return billing_service.create_checkout_session(db, settings, user_id, body.plan or "")
    except BillingNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except BillingError as e:
        logger.exception("Checkout error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        ) from e


@router.post("/create-portal", response_model=PortalResponse)
def create_portal(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a Stripe Customer Portal session."""
    try:
        return billing_service.create_portal_session(db, settings, user_id)
    except BillingNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BillingError as e:
        logger.exception("Portal error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal session",
        ) from e


@router.get("/subscription", response_model=SubscriptionOut | None)
def get_subscription(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Latest subscription of the caller, or null."""
    return billing_service.get_current_subscription(db, user_id)


@webhook_router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Stripe webhook. The raw body is needed for signature verification."""
    payload = await request.body()
    try:
        event = billing_service.verify_webhook(settings, payload, stripe_signature)
    except BillingNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValueError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e}")

    billing_service.handle_event(db, event)
    return {"received": True}
