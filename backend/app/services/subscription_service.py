import logging
from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from app.models.quota import PlanTier
from app.repository.user_repository import UserRepository

logger = logging.getLogger(__name__)

ACTIVE_EVENTS = {"INITIAL_PURCHASE", "RENEWAL", "UNCANCELLATION", "PRODUCT_CHANGE"}


class SubscriptionEvent(BaseModel):
    """The subset of a RevenueCat webhook event that drives the plan tier"""
    model_config = ConfigDict(extra="ignore")

    type: str
    app_user_id: str
    product_id: Optional[str] = None
    expiration_at_ms: Optional[int] = None


class SubscriptionWebhook(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: Optional[SubscriptionEvent] = None


def plan_from_product(product_id: Optional[str], current: PlanTier) -> PlanTier:
    """Paid tier named by a store product id, e.g. "veritas_premium_yearly"."""
    product = (product_id or "").lower()
    if "year" in product or "annual" in product:
        return PlanTier.YEARLY
    if "month" in product:
        return PlanTier.MONTHLY
    return current if current != PlanTier.FREE else PlanTier.MONTHLY


def resolve_event(event: SubscriptionEvent, current: PlanTier) -> Optional[Tuple[PlanTier, str]]:
    """
    Map a store event onto (plan, subscription status).

    Args:
        event: Webhook event
        current: User's plan before the event

    Returns:
        tuple or None: None for event types that do not change the plan
    """
    if event.type in ACTIVE_EVENTS:
        return plan_from_product(event.product_id, current), "active"
    if event.type == "CANCELLATION":
        # Access lasts until the EXPIRATION event
        return current, "canceled"
    if event.type == "EXPIRATION":
        return PlanTier.FREE, "none"
    if event.type == "BILLING_ISSUE":
        return PlanTier.FREE, "past_due"
    return None


class SubscriptionService:
    """Applies store subscription events to user plans."""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    def apply_event(self, event: SubscriptionEvent) -> bool:
        """
        Update the user named by the event.

        The store's app_user_id is the Veritas user id, set by the app at login.

        Returns:
            True if a user was updated
        """
        user_doc = self.user_repository.find_by_id(event.app_user_id)
        if user_doc is None:
            logger.warning("Subscription event %s for unknown user %s", event.type, event.app_user_id)
            return False

        current = PlanTier(user_doc.get("plan") or PlanTier.FREE.value)
        resolved = resolve_event(event, current)
        if resolved is None:
            logger.info("Ignoring subscription event %s", event.type)
            return False

        plan, status = resolved
        expires_at = None
        if event.expiration_at_ms is not None:
            expires_at = datetime.utcfromtimestamp(event.expiration_at_ms / 1000)

        self.user_repository.set_subscription(event.app_user_id, plan, status, expires_at)
        logger.info("User %s is now on %s (%s) after %s", event.app_user_id, plan.value, status, event.type)
        return True
