import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from svix.webhooks import Webhook, WebhookVerificationError

from smokeboard import config
from smokeboard.dependencies import decode_session_token
from smokeboard.services.clerk import verify_webhook

JWT_KEY = "test-signing-key"
SECRET = "whsec_" + base64.b64encode(b"another-secret").decode()


@pytest.fixture(name="hs256")
def hs256_fixture(monkeypatch):
    monkeypatch.setattr(config, "CLERK_JWT_KEY", JWT_KEY)
    monkeypatch.setattr(config, "CLERK_JWT_ALGORITHMS", ["HS256"])


def token(claims, key=JWT_KEY):
    return jwt.encode(claims, key, algorithm="HS256")


def test_session_claims(hs256):
    ctx = decode_session_token(token({
        "sub": "user_1",
        "metadata": {"role": "teacher", "schoolId": "schA", "stateId": "stTX"},
    }))

    assert ctx.user_id == "user_1"
    assert ctx.role == "teacher"
    assert ctx.school_id == "schA"
    assert ctx.state_id == "stTX"
    assert ctx.team_id is None


def test_session_without_metadata(hs256):
    ctx = decode_session_token(token({"sub": "user_1"}))
    assert ctx.role is None


def test_bad_sessions_are_anonymous(hs256):
    assert decode_session_token(token({"sub": "user_1"}, key="wrong-key")) is None
    assert decode_session_token("not-a-token") is None
    assert decode_session_token(token({"metadata": {"role": "admin"}})) is None


def test_no_key_means_anonymous(monkeypatch):
    monkeypatch.setattr(config, "CLERK_JWT_KEY", None)
    assert decode_session_token("anything") is None


def test_bearer_token_reaches_route(client, hs256):
    headers = {"Authorization": f"Bearer {token({'sub': 'user_1', 'metadata': {'role': 'teacher'}})}"}
    # teacher may sign in but not list students
    assert client.get("/api/students", headers=headers).status_code == 403


def test_session_cookie_reaches_route(client, airtable, hs256):
    cookie = token({"sub": "admin_1", "metadata": {"role": "admin"}})
    assert client.get("/api/students", headers={"Cookie": f"__session={cookie}"}).status_code == 200


def signed_headers(body, sent_at=None, msg_id="msg_1", secret=SECRET):
    sent_at = sent_at or datetime.now(timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(sent_at.timestamp())),
        "svix-signature": Webhook(secret).sign(msg_id, sent_at, body.decode()),
    }


def test_verify_webhook():
    body = json.dumps({"type": "user.created", "data": {"id": "user_1"}}).encode()
    event = verify_webhook(SECRET, signed_headers(body), body)
    assert event["data"]["id"] == "user_1"


def test_verify_webhook_any_listed_signature_matches():
    body = b'{"type": "user.deleted"}'
    headers = signed_headers(body)
    headers["svix-signature"] = "v1,c3RhbGU= " + headers["svix-signature"]

    assert verify_webhook(SECRET, headers, body)["type"] == "user.deleted"


def test_verify_webhook_rejects_tampering():
    body = b'{"type": "user.created"}'
    headers = signed_headers(body)

    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, headers, b'{"type": "user.deleted"}')


def test_verify_webhook_rejects_stale_messages():
    body = b"{}"
    sent_at = datetime.now(timezone.utc) - timedelta(minutes=10)
    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, signed_headers(body, sent_at=sent_at), body)


def test_verify_webhook_requires_headers():
    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, {"svix-id": "msg_1"}, b"{}")

    headers = {"svix-id": "msg_1", "svix-timestamp": "soon", "svix-signature": "v1,x"}
    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, headers, b"{}")


def test_verify_webhook_signed_body_must_be_json_object():
    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, signed_headers(b"not json"), b"not json")

    with pytest.raises(WebhookVerificationError):
        verify_webhook(SECRET, signed_headers(b"[1, 2]"), b"[1, 2]")


def test_verify_webhook_malformed_secret():
    body = b"{}"
    with pytest.raises(WebhookVerificationError):
        verify_webhook("whsec_not*base64!", signed_headers(body), body)
