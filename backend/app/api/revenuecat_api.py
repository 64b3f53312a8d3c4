from fastapi import APIRouter, Depends

from app.core.dependencies import get_subscription_service
from app.core.exceptions import InvalidInput
from app.middleware.auth_middleware import verify_webhook_secret
from app.services.subscription_service import SubscriptionService, SubscriptionWebhook

router = APIRouter()


@router.post("/webhook", dependencies=[Depends(verify_webhook_secret)])
async def revenuecat_webhook(
    payload: SubscriptionWebhook,
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Subscription events from RevenueCat

    Unknown users and event types are acknowledged so the store stops retrying.

    Raises:
        InvalidInput: Body carries no event
    """
    if payload.event is None:
        raise InvalidInput("event", "missing")

    updated = subscription_service.apply_event(payload.event)
    return {"received": True, "updated": updated}
