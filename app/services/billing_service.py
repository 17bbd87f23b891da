"""
Stripe billing glue: plan catalog, checkout / portal sessions, webhook handling.
Signature verification is delegated to stripe.Webhook; this module only maps
verified events onto users.plan and the subscriptions table.
"""
import json
import logging
from datetime import datetime

import stripe
from sqlalchemy.orm import Session

from app.config import Settings
from app.models.subscription import Subscription
from app.models.user import PlanTier, User
from app.services.errors import BillingError, BillingNotConfiguredError, UserNotFoundError

logger = logging.getLogger(__name__)

PLANS = {
    PlanTier.STARTER.value: {
        "name": "Starter",
        "price": 29,
        "features": ["1,000 AI messages/month", "Email support"],
    },
    PlanTier.PRO.value: {
        "name": "Pro",
        "price": 99,
        "features": ["10,000 AI messages/month", "Priority support", "API access"],
    },
    PlanTier.ENTERPRISE.value: {
        "name": "Enterprise",
        "price": 299,
        "features": ["Unlimited AI messages", "24/7 support", "Custom integrations"],
    },
}


def price_id_for(settings: Settings, plan: str) -> str:
    return {
        PlanTier.STARTER.value: settings.stripe_price_starter,
        PlanTier.PRO.value: settings.stripe_price_pro,
        PlanTier.ENTERPRISE.value: settings.stripe_price_enterprise,
    }.get(plan, "")


def list_plans(settings: Settings) -> dict[str, dict]:
    return {
        key: {**plan, "available": bool(price_id_for(settings, key))}
        for key, plan in PLANS.items()
    }


def _require_stripe(settings: Settings) -> str:
    if not settings.stripe_secret_key:
        raise BillingNotConfiguredError("Stripe not configured")
    return settings.stripe_secret_key


def _ensure_customer(db: Session, user: User, api_key: str) -> str:
    if user.stripe_customer_id:
        return user.stripe_customer_id
    customer = stripe.Customer.create(
        email=user.email,
        metadata={"userId": user.id},
        api_key=api_key,
    )
    user.stripe_customer_id = customer.id
    db.commit()
    logger.info("Created Stripe customer %s for user %s", customer.id, user.id)
    return customer.id


def create_checkout_session(db: Session, settings: Settings, user_id: str, plan: str) -> dict:
    """Returns {"sessionId", "url"}. Raises ValueError for an unknown or unpriced plan."""
    api_key = _require_stripe(settings)
    price_id = price_id_for(settings, plan)
    if plan not in PLANS or not price_id:
        raise ValueError("Invalid plan")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFoundError(user_id)
    try:
        customer_id = _ensure_customer(db, user, api_key)
        session = stripe.checkout.Session.create(
            customer=customer_id,
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription",
            success_url=f"{settings.frontend_url}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.frontend_url}/pricing",
            metadata={"userId": user_id, "plan": plan},
            api_key=api_key,
        )
    except stripe.StripeError as e:
        raise BillingError(str(e)) from e
    return {"sessionId": session.id, "url": session.url}


def create_portal_session(db: Session, settings: Settings, user_id: str) -> dict:
    """Raises LookupError when the user has no Stripe customer yet."""
    api_key = _require_stripe(settings)
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.stripe_customer_id:
        raise LookupError("No subscription found")
    try:
        session = stripe.billing_portal.Session.create(
            customer=user.stripe_customer_id,
            return_url=f"{settings.frontend_url}/dashboard",
            api_key=api_key,
        )
    except stripe.StripeError as e:
        raise BillingError(str(e)) from e
    return {"url": session.url}


def get_current_subscription(db: Session, user_id: str) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .first()
    )


def verify_webhook(settings: Settings, payload: bytes, signature: str | None) -> dict:
    """
    Verify the Stripe signature and return the event as a plain dict.
    Raises BillingNotConfiguredError, or ValueError when the payload/signature is invalid.
    """
    _require_stripe(settings)
    if not settings.stripe_webhook_secret:
        raise BillingNotConfiguredError("Stripe webhook secret not configured")
    try:
        stripe.Webhook.construct_event(payload, signature or "", settings.stripe_webhook_secret)
    except stripe.SignatureVerificationError as e:
        raise ValueError(f"Invalid signature: {e}") from e
    return json.loads(payload)


def _timestamp(value) -> datetime | None:
    return datetime.utcfromtimestamp(value) if value else None


def handle_event(db: Session, event: dict) -> bool:
    """Apply one verified event. Returns False for event types that are ignored."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        metadata = obj.get("metadata") or {}
        user_id = metadata.get("userId")
        plan = metadata.get("plan")
        if not user_id or plan not in PLANS:
            logger.warning("Checkout session %s without usable metadata", obj.get("id"))
            return True
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning("Checkout completed for unknown user %s", user_id)
            return True
        user.plan = plan
        stripe_subscription_id = obj.get("subscription")
        sub = None
        if stripe_subscription_id:
            # Stripe redelivers events; one row per Stripe subscription
            sub = (
                db.query(Subscription)
                .filter(Subscription.stripe_subscription_id == stripe_subscription_id)
                .first()
            )
        if sub is None:
            db.add(Subscription(
                user_id=user_id,
                stripe_subscription_id=stripe_subscription_id,
                plan=plan,
                status="active",
            ))
        db.commit()
        logger.info("User %s upgraded to %s", user_id, plan)
        return True

    if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
        sub = (
            db.query(Subscription)
            .filter(Subscription.stripe_subscription_id == obj.get("id"))
            .first()
        )
        if not sub:
            logger.warning("Subscription event for unknown subscription %s", obj.get("id"))
            return True
        sub.status = obj.get("status") or sub.status
        sub.current_period_start = _timestamp(obj.get("current_period_start")) or sub.current_period_start
        sub.current_period_end = _timestamp(obj.get("current_period_end")) or sub.current_period_end
        if event_type == "customer.subscription.deleted":
            user = db.query(User).filter(User.id == sub.user_id).first()
            if user:
                user.plan = PlanTier.FREE.value
        db.commit()
        return True

    logger.debug("Ignoring Stripe event %s", event_type)
    return False
