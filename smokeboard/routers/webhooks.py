import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from svix.webhooks import WebhookVerificationError

from .. import config
from ..errors import DataServiceError
from ..services.airtable import AirtableClient, get_airtable
from ..services.clerk import primary_email, verify_webhook
from ..services.users import create_user, suspend_user, update_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    client: AirtableClient = Depends(get_airtable)
):
    """Mirror identity provider user lifecycle events into the Users table."""
    if not config.CLERK_WEBHOOK_SECRET:
        logger.error("CLERK_WEBHOOK_SECRET is not set")
        return PlainTextResponse("Webhook secret not configured", status_code=500)

    headers = request.headers
    if not (headers.get("svix-id") and headers.get("svix-timestamp") and headers.get("svix-signature")):
        return PlainTextResponse("Missing svix headers", status_code=400)

    body = await request.body()
    try:
        event = verify_webhook(config.CLERK_WEBHOOK_SECRET, headers, body)
    except WebhookVerificationError as exc:
        logger.warning("Webhook verification failed: %s", exc)
        return PlainTextResponse("Invalid signature", status_code=400)

    event_type = event.get("type")
    data = event.get("data") or {}
    try:
        if event_type == "user.created":
            email = primary_email(data)
            await create_user(client, data["id"], email, data.get("first_name") or "", data.get("last_name") or "")
            logger.info("User created in data store: %s", email)
        elif event_type == "user.updated":
            email = primary_email(data)
            await update_user(client, data["id"], email, data.get("first_name") or "", data.get("last_name") or "")
            logger.info("User updated in data store: %s", email)
        elif event_type == "user.deleted":
            if data.get("id"):
                await suspend_user(client, data["id"])
                logger.info("User suspended in data store: %s", data["id"])
        else:
            logger.debug("Ignoring webhook event %s", event_type)
    except DataServiceError:
        # Non-2xx makes the provider redeliver later
        logger.exception("Failed to mirror %s", event_type)
        return PlainTextResponse("Failed to process webhook", status_code=500)

    return PlainTextResponse("OK", status_code=200)
