"""Payment domain exceptions.

Raised by ``PaymentService``; the views translate them into HTTP
responses (404, 400, 409, 502).
"""

from __future__ import annotations


class PaymentTargetNotFound(Exception):
    """The order or subscription to be paid does not exist."""


class InvalidPaymentRequest(Exception):
    """The request cannot produce a charge (bad method, zero amount, cancelled target)."""


class PaymentAlreadyConfirmed(Exception):
    """The target is already paid; no new charge is issued."""


class PaymentIssueInProgress(Exception):
    """Another issuance for the same target is still running."""


class PaymentProviderError(Exception):
    """The payment provider rejected or failed the request."""


class InvalidWebhookSignature(Exception):
    """The card webhook body does not match its ``Stripe-Signature`` header."""
