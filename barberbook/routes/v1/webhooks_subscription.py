# barberbook/routes/v1/webhooks_subscription.py
"""
Subscription gateway webhook (v1).

The raw body is passed to the gateway for signature verification before it
is parsed. Duplicates and out-of-order deliveries are acknowledged with 200
so the gateway stops retrying; only signature failures are rejected.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ...api.dependencies.services import get_subscription_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...schemas.webhook import WebhookAck
from ...services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

# v1 router - mounted under /api/v1/webhooks
router = APIRouter(tags=["webhooks"])

SIGNATURE_HEADERS = ("stripe-signature", "x-webhook-signature")


@router.post(
    "/subscription",
    response_model=WebhookAck,
    responses={400: {"description": "Invalid signature"}},
)
async def subscription_webhook(
    request: Request,
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> WebhookAck:
    payload = await request.body()
    signature = next(
        (request.headers[name] for name in SIGNATURE_HEADERS if name in request.headers), None
    )
    try:
        outcome = await asyncio.to_thread(
            subscription_service.process_webhook, payload, signature
        )
    except DomainException as e:
        handle_domain_exception(e)
    logger.info("Subscription webhook handled: %s", outcome.value)
    return WebhookAck(ok=True, outcome=outcome.value)
