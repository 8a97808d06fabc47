"""Payment DTOs: requests and results of the check and issue use cases."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.payments.constants import IssueMode, PaymentMethod, PaymentTarget, ProviderStatus


class CheckPaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PaymentTarget
    id: UUID


class CreatePaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PaymentTarget
    id: UUID
    payment_method: PaymentMethod
    return_url: str = ""

    @field_validator("return_url")
    @classmethod
    def return_url_must_be_http(cls, v: str) -> str:
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("return_url must be an http(s) URL.")
        return v


class PaymentCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ProviderStatus
    updated: bool = False


class PaymentIssueResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_url: str = ""
    pix_payload: str = ""
    mode: IssueMode = IssueMode.ONE_TIME
    transaction_id: Optional[str] = None
