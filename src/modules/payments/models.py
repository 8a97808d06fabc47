"""Payment attempt fields shared by orders and subscriptions.

A payment attempt is not an entity of its own: the current charge
(method, provider reference, checkout URL, PIX payload, expiry) lives
on the order or subscription being paid.  ``payment_expired_at`` is
set when the provider reports the charge as expired and cleared when
a new charge is issued.
"""

from __future__ import annotations

from django.db import models

from modules.payments.constants import PaymentMethod


class PaymentAttemptFields(models.Model):
    payment_method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PIX,
    )
    pix_transaction_id = models.CharField(
        max_length=64, null=True, blank=True, default=None, db_index=True
    )
    card_checkout_id = models.CharField(
        max_length=255, null=True, blank=True, default=None, db_index=True
    )
    payment_url = models.URLField(max_length=500, blank=True, default="")
    pix_payload = models.TextField(blank=True, default="")
    payment_expires_at = models.DateTimeField(null=True, blank=True, default=None)
    payment_expired_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        abstract = True

    @property
    def transaction_reference(self) -> str | None:
        """Provider reference of the current charge for its method."""
        if self.payment_method == PaymentMethod.CARD:
            return self.card_checkout_id
        return self.pix_transaction_id

    @property
    def is_payment_expired(self) -> bool:
        return self.payment_expired_at is not None
