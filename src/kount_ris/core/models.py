"""Pydantic data models shared by the request, validation and response code.

The request container, the validator, the response parser and the client
all exchange these types.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RequestMode(str, Enum):
    """RIS request mode. Determines which validation rules apply."""

    INQUIRY = "Q"
    PHONE_ORDER = "P"
    WORKFLOW_THRESHOLD = "W"
    WORKFLOW = "J"
    UPDATE = "U"
    UPDATE_REEVALUATE = "X"


INQUIRY_MODES = frozenset({
    RequestMode.INQUIRY,
    RequestMode.PHONE_ORDER,
    RequestMode.WORKFLOW_THRESHOLD,
    RequestMode.WORKFLOW,
})
UPDATE_MODES = frozenset({RequestMode.UPDATE, RequestMode.UPDATE_REEVALUATE})
ALL_MODES = INQUIRY_MODES | UPDATE_MODES


class Decision(str, Enum):
    """RIS decision code returned in the AUTO field."""

    APPROVE = "A"
    DECLINE = "D"
    REVIEW = "R"
    ESCALATE = "E"


class AuthorizationStatus(str, Enum):
    """Payment authorization result sent in the AUTH field."""

    APPROVED = "A"
    DECLINED = "D"


class RefundChargebackStatus(str, Enum):
    """Refund/chargeback flag sent in the RFCB field of an update."""

    REFUND = "R"
    CHARGEBACK = "C"


class ValidationError(BaseModel):
    """A single client-side validation failure for one field."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class CartItem(BaseModel):
    """One shopping cart line of an inquiry."""

    product_type: str = Field(description="Product category, e.g. 'SPORTING_GOODS'")
    name: str = Field(description="Item name or SKU")
    description: str = ""
    quantity: int = Field(ge=0)
    price: int = Field(ge=0, description="Unit price in the lowest currency unit")
