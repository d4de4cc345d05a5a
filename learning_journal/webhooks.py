# webhooks.py
import json
import logging
import os
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from learning_journal import models
from learning_journal.db import transaction
from learning_journal.errors import ValidationError

load_dotenv()

log = logging.getLogger(__name__)

WEBHOOK_SIGNING_SECRET = os.getenv("WEBHOOK_SIGNING_SECRET", "").strip()

SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")
USER_EVENTS = {"user.created", "user.updated"}
SESSION_EVENTS = {"session.created", "session.ended"}


def verify_event(payload: bytes, headers) -> dict:
    """Checks the signature headers and returns the decoded event."""
    picked = {h: headers.get(h) for h in SIGNATURE_HEADERS}
    if not all(picked.values()):
        log.info("Webhook rejected, missing signature headers: %s", picked)
        raise ValidationError("Missing Svix headers")
    if not WEBHOOK_SIGNING_SECRET:
        raise RuntimeError("WEBHOOK_SIGNING_SECRET is not set in .env")
    try:
        # svix 2.x only checks the signature and returns None
        Webhook(WEBHOOK_SIGNING_SECRET).verify(payload, picked)
    except WebhookVerificationError as e:
        log.warning("Webhook verification failed: %s", e)
        raise ValidationError("Invalid signature")
    try:
        event = json.loads(payload)
    except ValueError:
        raise ValidationError("Webhook payload is not valid JSON")
    if not isinstance(event, dict):
        raise ValidationError("Webhook payload is not an event object")
    return event


def _user_fields(data: dict) -> dict:
    emails = data.get("email_addresses") or []
    email = emails[0].get("email_address") if emails else None
    if not data.get("id") or not email:
        raise ValidationError("User event is missing id or email")
    return {
        "username": data.get("username") or None,
        "email": email,
        "profile_image_url": data.get("image_url") or None,
    }


def handle_event(db: Session, event: dict) -> None:
    event_type = event.get("type")
    data = event.get("data") or {}
    log.info("Processing webhook event %s", event_type)

    if event_type in USER_EVENTS:
        fields = _user_fields(data)
        with transaction(db):
            user = db.get(models.User, data["id"])
            if user is None:
                db.add(models.User(user_id=data["id"], **fields))
            else:
                for k, v in fields.items():
                    setattr(user, k, v)
        log.info("User %s synced", data["id"])
    elif event_type in SESSION_EVENTS:
        user = db.get(models.User, data["user_id"]) if data.get("user_id") else None
        if user is not None:
            with transaction(db):
                user.last_seen_at = datetime.utcnow()
    else:
        log.info("Unhandled webhook event type: %s", event_type)
