import time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentStatus(str, Enum):
    """Canonical payment outcome shared by every provider."""
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    REFUNDED = "refunded"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


def generate_order_id() -> str:
    return f"ORDER-{int(time.time() * 1000)}"


class PaymentRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., gt=0)   # major units
    currency: Optional[str] = None       # provider default when omitted
    order_id: str = Field(default_factory=generate_order_id)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None

    callback_url: Optional[str] = None
    success_url: Optional[str] = None
    fail_url: Optional[str] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("order_id", mode="before")
    @classmethod
    def default_order_id(cls, v):
        return v or generate_order_id()

    @property
    def label(self) -> str:
        return self.description or self.name or "Payment"


class PaymentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PaymentStatus
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None     # major units
    currency: Optional[str] = None
    raw_status: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == PaymentStatus.SUCCESS


class CreatePaymentResponse(BaseModel):
    status: Literal["success"] = "success"
    data: Dict[str, Any]

    @property
    def order_id(self) -> Optional[str]:
        return self.data.get("order_id")


class CallbackEnvelope(BaseModel):
    """Verified callback payload (signature removed) and the signature it carried."""
    model_config = ConfigDict(frozen=True)

    payload: Dict[str, Any]
    signature: str
