"""
Checkout Schemas

Pydantic models for the payment-initiation request and response.

Inputs are deliberately lenient: counts are clamped to 1 and a malformed
add-on list is treated as empty, so a cosmetic input problem never blocks
a checkout attempt. Only a missing booking id is rejected (by the
orchestrator, after trimming).
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.pricing_engine import AddOn, clamp_count, parse_addons


class CheckoutRequest(BaseModel):
    """Body of POST /checkout"""
    model_config = ConfigDict(extra="ignore")

    booking_id: str = ""
    customer_email: str = ""
    bags: int = Field(default=1, ge=1)
    days: int = Field(default=1, ge=1)
    addons: List[AddOn] = Field(default_factory=list)

    @field_validator('booking_id', 'customer_email', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator('bags', 'days', mode='before')
    @classmethod
    def clamp(cls, v: Any) -> int:
        return clamp_count(v)

    @field_validator('addons', mode='before')
    @classmethod
    def normalize_addons(cls, v: Any) -> List[AddOn]:
        return parse_addons(v)


class CheckoutResponse(BaseModel):
    ok: bool = True
    url: str


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    details: Optional[Any] = None
