"""Stripe webhook signature verification.

The ``Stripe-Signature`` header looks like ``t=<unix ts>,v1=<hex>[,v1=...]``.
Each ``v1`` value is an HMAC-SHA256 of ``"<t>.<raw body>"`` keyed with the
endpoint secret.  Timestamps outside the tolerance window are rejected so
a captured request cannot be replayed later.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional

from modules.payments.constants import CARD_SIGNATURE_TOLERANCE_SECONDS
from modules.payments.exceptions import InvalidWebhookSignature


def compute_card_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[Optional[int], list[str]]:
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_card_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = CARD_SIGNATURE_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> None:
    """Raise ``InvalidWebhookSignature`` unless ``header`` signs ``payload``."""
    if not header:
        raise InvalidWebhookSignature("Missing Stripe-Signature header.")

    timestamp, signatures = _parse_header(header)
    if timestamp is None or not signatures:
        raise InvalidWebhookSignature("Malformed Stripe-Signature header.")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance:
        raise InvalidWebhookSignature("Signature timestamp outside the tolerance window.")

    expected = compute_card_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise InvalidWebhookSignature("Signature does not match the payload.")
