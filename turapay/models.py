from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text

from turapay.database import Base


def generate_id():
    return f"txn_{uuid.uuid4().hex[:12]}"


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=generate_id)
    sender_id = Column(String, nullable=False, index=True)
    receiver_name = Column(String, nullable=True)
    receiver_phone = Column(String, nullable=False, index=True)
    receiver_country = Column(String, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    fee = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    receiver_currency = Column(String(3), nullable=False, default="ZMW")
    exchange_rate = Column(Numeric(18, 6), nullable=True)  # snapshot, never recomputed
    payout_amount = Column(Numeric(14, 2), nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    payout_method = Column(String, nullable=True)
    payment_proof_url = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    tid = Column(String, nullable=True)
    sender_number = Column(String, nullable=True)
    sender_name = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True, index=True)
    payment_date = Column(DateTime, nullable=True)
    status_checks = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=True, onupdate=utc_now)


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False, default="")
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True, index=True)
    verified = Column(Boolean, nullable=False, default=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    referral_code = Column(String, nullable=True, unique=True)
    referred_by = Column(String, nullable=True)
    referral_earnings = Column(Numeric(14, 2), nullable=False, default=0)
    id_type = Column(String, nullable=True)
    id_number = Column(String, nullable=True)
    id_document_url = Column(String, nullable=True)
    selfie_url = Column(String, nullable=True)
    access_token = Column(String, nullable=True, unique=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)


class Deposit(Base):
    """One collection attempt; credited to the payer's balance at most once."""

    __tablename__ = "deposits"

    reference_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    payment_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Pending")
    credited_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)


class ReferralReward(Base):
    __tablename__ = "referral_rewards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    referrer_id = Column(String, nullable=False, index=True)
    referred_user_id = Column(String, nullable=False)
    transaction_id = Column(String, nullable=False, unique=True)
    reward_amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime, nullable=False, default=utc_now)


class ReconciliationItem(Base):
    """A confirmed gateway outcome whose status write did not land."""

    __tablename__ = "reconciliation_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, nullable=False, index=True)
    reference_id = Column(String, nullable=True)
    target_status = Column(String, nullable=False)
    reason = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    state = Column(String, nullable=False, default="open", index=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    resolved_at = Column(DateTime, nullable=True)


class Recipient(Base):
    """A receiver saved by a user for quick sends."""

    __tablename__ = "recipients"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    country = Column(String, nullable=False, default="Zambia")
    payout_method = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=True, onupdate=utc_now)
