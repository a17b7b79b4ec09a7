from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_name: Optional[str]
    receiver_phone: str
    receiver_country: Optional[str]
    amount: Decimal
    fee: Decimal
    total_amount: Decimal
    currency: str
    receiver_currency: str
    exchange_rate: Optional[Decimal]
    payout_amount: Optional[Decimal]
    status: str
    payout_method: Optional[str] = None
    payment_proof_url: Optional[str] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    tid: Optional[str] = None
    sender_number: Optional[str] = None
    sender_name: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_date: Optional[datetime] = None
    version: int
    created_at: datetime


class QuoteResponse(BaseModel):
    amount: Decimal
    fee: Decimal
    fee_percentage: Decimal
    total_amount: Decimal
    currency: str
    receiver_currency: str
    exchange_rate: Decimal
    payout_amount: Decimal


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: Optional[str]
    phone_number: Optional[str]
    verified: bool
    balance: Decimal
    referral_earnings: Decimal
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_document_url: Optional[str] = None
    selfie_url: Optional[str] = None


class RecipientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    phone_number: str
    country: str
    payout_method: str
    created_at: datetime


class SettingsResponse(BaseModel):
    settings: Dict[str, str]


class StatsResponse(BaseModel):
    pending_transactions: int
    completed_transactions: int
    revenue: Decimal
    pending_kyc: int
    total_users: int


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
