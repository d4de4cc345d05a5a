import json
import os
from datetime import datetime, timezone

from svix.webhooks import Webhook

from learning_journal import models, webhooks


def signed(event: dict, msg_id: str = "msg_1"):
    payload = json.dumps(event)
    now = datetime.now(tz=timezone.utc)
    signature = Webhook(os.environ["WEBHOOK_SIGNING_SECRET"]).sign(msg_id, now, payload)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }
    return payload, headers


def user_event(kind="user.created", email="ada@example.com", username="ada"):
    return {
        "type": kind,
        "data": {
            "id": "user_ada",
            "username": username,
            "email_addresses": [{"email_address": email}],
            "image_url": "https://img.example.com/ada.png",
        },
    }


def test_user_created_then_updated(client, db):
    payload, headers = signed(user_event())
    assert client.post("/api/webhooks", content=payload, headers=headers).status_code == 200

    payload, headers = signed(user_event("user.updated", email="ada@new.example.com"), "msg_2")
    assert client.post("/api/webhooks", content=payload, headers=headers).status_code == 200

    user = db.get(models.User, "user_ada")
    assert user.email == "ada@new.example.com"
    assert user.username == "ada"
    assert db.query(models.User).count() == 1


def test_session_event_touches_last_seen(client, db):
    db.add(models.User(user_id="user_ada", email="ada@example.com"))
    db.commit()

    payload, headers = signed({"type": "session.created", "data": {"user_id": "user_ada"}})
    assert client.post("/api/webhooks", content=payload, headers=headers).status_code == 200

    db.expire_all()
    assert db.get(models.User, "user_ada").last_seen_at is not None


def test_unknown_event_is_accepted(client, db):
    payload, headers = signed({"type": "organization.created", "data": {}})
    assert client.post("/api/webhooks", content=payload, headers=headers).status_code == 200
    assert db.query(models.User).count() == 0


def test_missing_headers(client):
    resp = client.post("/api/webhooks", content=json.dumps(user_event()), headers={"svix-id": "msg_1"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing Svix headers"}


def test_bad_signature(client, db):
    payload, headers = signed(user_event())
    headers["svix-signature"] = "v1,AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="
    resp = client.post("/api/webhooks", content=payload, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid signature"}
    assert db.query(models.User).count() == 0


def test_event_is_decoded_from_payload_when_verify_returns_nothing(monkeypatch):
    # svix 2.x: verify() only checks the signature
    monkeypatch.setattr(Webhook, "verify", lambda self, data, headers: None)
    payload, headers = signed(user_event())

    event = webhooks.verify_event(payload.encode(), headers)

    assert event["type"] == "user.created"
    assert event["data"]["id"] == "user_ada"


def test_non_object_payload_is_rejected(client):
    payload, headers = signed(["not", "an", "event"])
    resp = client.post("/api/webhooks", content=payload, headers=headers)
    assert resp.status_code == 400
