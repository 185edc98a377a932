"""Builders for Stripe webhook payloads and signature headers used in tests."""
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional, Tuple

WEBHOOK_SECRET = "whsec_test_fake_secret"


def checkout_completed_event(
    order_id: Optional[str],
    payment_intent_id: str = "pi_test_123",
    session_id: str = "cs_test_abc",
    event_id: str = "evt_test_completed",
) -> Dict[str, Any]:
    metadata = {"orderId": order_id} if order_id is not None else {}
    return {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_intent": payment_intent_id,
                "payment_status": "paid",
                "metadata": metadata,
            }
        },
    }


def payment_failed_event(
    order_id: str, payment_intent_id: str = "pi_test_failed"
) -> Dict[str, Any]:
    return {
        "id": "evt_test_failed",
        "object": "event",
        "type": "payment_intent.payment_failed",
        "data": {
            "object": {
                "id": payment_intent_id,
                "object": "payment_intent",
                "metadata": {"orderId": order_id},
                "last_payment_error": {"message": "Your card was declined."},
            }
        },
    }


def sign_payload(
    payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None
) -> str:
    """Build a Stripe-Signature header for `payload`."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def signed(event: Dict[str, Any], secret: str = WEBHOOK_SECRET) -> Tuple[bytes, str]:
    """Serialize an event and sign it."""
    payload = json.dumps(event)
    return payload.encode("utf-8"), sign_payload(payload, secret)
