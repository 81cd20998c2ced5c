from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IntentMetadata(BaseModel):
    order_id: int
    user_id: int
    membership_id: int
    order_code: str


class PaymentIntent(BaseModel):
    full_name: str
    email: str
    amount: Decimal
    metadata: IntentMetadata
    return_type: str = "GET"
    redirect_url: str
    cancel_url: str
    webhook_url: str
    success_url: str


class CheckoutResponse(BaseModel):
    payment_url: str


class VerificationMetadata(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    order_code: str | None = None
    order_id: str | None = None


class VerificationResponse(BaseModel):
    """Provider's authoritative record of a payment attempt."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    invoice_id: str | None = None
    status: str = ""
    amount: Decimal = Decimal("0")
    transaction_id: str = ""
    payment_method: str = ""
    sender_number: str = ""
    metadata: VerificationMetadata = Field(default_factory=VerificationMetadata)

    @field_validator("status", "transaction_id", "payment_method", "sender_number", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return "" if value is None else value

    @field_validator("amount", mode="before")
    @classmethod
    def _none_as_zero(cls, value):
        return Decimal("0") if value in (None, "") else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _missing_metadata(cls, value):
        return value or {}


# HTTP surface

class OrderRequest(BaseModel):
    user_id: int = Field(gt=0)
    membership_id: int = Field(gt=0)
    subtotal: Decimal = Field(ge=0, decimal_places=2)
    tax: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    payer_name: str
    payer_email: str


class PaymentRequest(BaseModel):
    order_id: int
