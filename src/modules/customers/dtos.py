"""Customer DTOs for the Service Layer.

Pydantic v2 contracts between the API layer and the services.
The document is sanitised and validated against the customer type:
CPF for PF, CNPJ for PJ.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator
from validate_docbr import CNPJ, CPF


class CustomerTypeEnum(StrEnum):
    PF = "PF"
    PJ = "PJ"


class AddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    @field_validator("state")
    @classmethod
    def state_is_uf(cls, v: str) -> str:
        v = v.strip().upper()
        if v and len(v) != 2:
            raise ValueError("State must be a two-letter UF code.")
        return v


class CreateCustomerDTO(BaseModel):
    """Immutable DTO for customer creation requests."""

    model_config = ConfigDict(frozen=True)

    name: str
    customer_type: CustomerTypeEnum
    document: str
    email: EmailStr
    phone: str = ""
    address: AddressDTO = AddressDTO()

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("document", mode="before")
    @classmethod
    def sanitize_document(cls, v: str) -> str:
        if not isinstance(v, str):
            return v
        return re.sub(r"\D", "", v)

    @model_validator(mode="after")
    def validate_document(self) -> Self:
        validator = CPF() if self.customer_type == CustomerTypeEnum.PF else CNPJ()
        if not validator.validate(self.document):
            kind = "CPF" if self.customer_type == CustomerTypeEnum.PF else "CNPJ"
            raise ValueError(f"Invalid {kind} number.")
        return self


class UpdateCustomerDTO(BaseModel):
    """Partial update; ``None`` means "leave unchanged"."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: AddressDTO | None = None
    is_active: bool | None = None
