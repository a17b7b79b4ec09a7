from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CollectionRequest(BaseModel):
    """Body of the lipila-deposit function. Field requirements depend on the path."""

    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[float] = None
    currency: Optional[str] = None
    account_number: Optional[str] = Field(None, alias="accountNumber")
    reference_id: Optional[str] = Field(None, alias="referenceId")
    card_number: Optional[str] = Field(None, alias="cardNumber")
    card_expiry: Optional[str] = Field(None, alias="cardExpiry")
    card_cvv: Optional[str] = Field(None, alias="cardCVV")
    cardholder_name: Optional[str] = Field(None, alias="cardholderName")


class DisbursementRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[float] = None
    currency: Optional[str] = None
    account_number: Optional[str] = Field(None, alias="accountNumber")
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    reference_id: Optional[str] = Field(None, alias="referenceId")


class GatewayEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reference_id: str = Field(alias="referenceId")
    status: str
    type: Literal["collection", "disbursement"] = "disbursement"
    transaction_id: Optional[str] = Field(None, alias="transactionId")


# Rates are USD-base, so transfers are priced in USD
SENDER_CURRENCY = "USD"


class TransferCreate(BaseModel):
    amount: Optional[float] = None
    receiver_phone: Optional[str] = None
    receiver_name: Optional[str] = None
    receiver_country: Optional[str] = None
    currency: str = SENDER_CURRENCY
    receiver_currency: str = "ZMW"
    payout_method: Optional[str] = None
    payment_proof_url: Optional[str] = None
    sender_name: Optional[str] = None

    @field_validator("currency", "receiver_currency")
    @classmethod
    def validate_currency(cls, v):
        if len(v.strip()) != 3:
            raise ValueError("currency must be a 3-letter code")
        return v.strip().upper()

    @field_validator("currency")
    @classmethod
    def validate_sender_currency(cls, v):
        if v != SENDER_CURRENCY:
            raise ValueError(f"transfers are sent in {SENDER_CURRENCY}")
        return v


class PaymentProofRequest(BaseModel):
    payment_proof_url: str
    sender_name: Optional[str] = None


class ApproveRequest(BaseModel):
    tid: Optional[str] = None
    sender_name: Optional[str] = None
    status: Literal["deposited", "paid", "completed"] = "deposited"
    notes: Optional[str] = None
    sender_number: Optional[str] = None
    reference: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None
    notes: Optional[str] = None


class SettingUpdate(BaseModel):
    value: str


class KycActionRequest(BaseModel):
    action: Literal["approve", "decline", "unverify"]


class RecipientCreate(BaseModel):
    full_name: str
    phone_number: str
    payout_method: str
    country: str = "Zambia"


class RecipientUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    payout_method: Optional[str] = None
    country: Optional[str] = None


class KycSubmission(BaseModel):
    """Identity details and uploaded document URLs for operator review."""

    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_document_url: Optional[str] = None
    selfie_url: Optional[str] = None
