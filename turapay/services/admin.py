"""
Operator actions: approve/reject pending transfers, KYC decisions, referral
rewards and dashboard counters.

Approve and reject only act on a pending transfer. A second approval, an
approval after rejection, or a write racing another operator fails with a
409 rather than overwriting.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from turapay import models
from turapay.errors import ProfileNotFound, ValidationFailed
from turapay.services.fees import to_decimal, to_money
from turapay.services.settings import get_bool_setting, get_decimal_setting
from turapay.services.transfers import get_transfer, transition
from turapay.status import SUCCESS_STATUSES, TransactionStatus

logger = logging.getLogger(__name__)


APPROVAL_STATUSES = {
    TransactionStatus.DEPOSITED.value,
    TransactionStatus.PAID.value,
    TransactionStatus.COMPLETED.value,
}

KYC_ACTIONS = {"approve", "decline", "unverify"}


def approve_transaction(
    db: Session,
    transaction_id: str,
    tid: Optional[str],
    sender_name: Optional[str],
    status: str = TransactionStatus.DEPOSITED.value,
    notes: Optional[str] = None,
    sender_number: Optional[str] = None,
    reference: Optional[str] = None,
) -> models.Transaction:
    """
    Record that the payout happened out of band.

    No gateway call is made; the operator supplies the mobile-money TID and
    the sender name shown on the receipt.
    """
    if status not in APPROVAL_STATUSES:
        raise ValidationFailed(f"Cannot approve into status {status}")
    if not (tid or "").strip():
        raise ValidationFailed("Please enter a TID number")
    if not (sender_name or "").strip():
        raise ValidationFailed("Please enter the sender name")

    txn = get_transfer(db, transaction_id)
    sender_name = sender_name.strip()
    fields = {
        "tid": tid.strip(),
        "sender_name": sender_name,
        "payment_date": models.utc_now(),
        "admin_notes": f"Sender: {sender_name} | {notes}" if notes else f"Sender: {sender_name}",
    }
    if sender_number:
        fields["sender_number"] = sender_number.strip()
    if reference:
        fields["payment_reference"] = reference.strip()

    txn = transition(db, txn, status, expected_status=TransactionStatus.PENDING, **fields)
    logger.info(f"Transaction {txn.id} approved as {status} (TID {txn.tid})")

    if status == TransactionStatus.DEPOSITED.value:
        process_referral_reward(db, txn)
    return txn


def reject_transaction(
    db: Session,
    transaction_id: str,
    reason: Optional[str],
    notes: Optional[str] = None,
) -> models.Transaction:
    if not (reason or "").strip():
        raise ValidationFailed("Please enter a rejection reason")

    txn = get_transfer(db, transaction_id)
    fields = {"rejection_reason": reason.strip()}
    if notes:
        fields["admin_notes"] = notes
    txn = transition(db, txn, TransactionStatus.REJECTED, expected_status=TransactionStatus.PENDING, **fields)
    logger.info(f"Transaction {txn.id} rejected: {txn.rejection_reason}")
    return txn


def process_referral_reward(db: Session, txn: models.Transaction) -> Optional[models.ReferralReward]:
    """Credit the receiver's referrer a percentage of the transfer, once."""
    if not get_bool_setting(db, "referral_enabled"):
        return None

    receiver = (
        db.query(models.Profile)
        .filter(models.Profile.phone_number == txn.receiver_phone)
        .first()
    )
    if receiver is None or not receiver.referred_by:
        return None

    existing = (
        db.query(models.ReferralReward)
        .filter(models.ReferralReward.transaction_id == txn.id)
        .first()
    )
    if existing is not None:
        return existing

    referrer = db.query(models.Profile).filter(models.Profile.id == receiver.referred_by).first()
    if referrer is None:
        logger.warning(f"Referrer {receiver.referred_by} of {receiver.id} not found")
        return None

    percentage = get_decimal_setting(db, "referral_percentage")
    reward_amount = to_money(to_decimal(txn.amount) * percentage / Decimal(100))
    reward = models.ReferralReward(
        referrer_id=referrer.id,
        referred_user_id=receiver.id,
        transaction_id=txn.id,
        reward_amount=reward_amount,
        currency=txn.currency or "USD",
    )
    db.add(reward)
    referrer.referral_earnings = to_money(to_decimal(referrer.referral_earnings or 0) + reward_amount)
    db.commit()
    db.refresh(reward)
    logger.info(f"Referral reward {reward_amount} credited to {referrer.id} for {txn.id}")
    return reward


def set_kyc_status(db: Session, profile_id: str, action: str) -> models.Profile:
    if action not in KYC_ACTIONS:
        raise ValidationFailed(f"Unknown KYC action: {action}")
    profile = db.query(models.Profile).filter(models.Profile.id == profile_id).first()
    if profile is None:
        raise ProfileNotFound(f"Profile {profile_id} not found")
    profile.verified = action == "approve"
    db.commit()
    db.refresh(profile)
    logger.info(f"KYC {action} for profile {profile_id}")
    return profile


def dashboard_stats(db: Session) -> Dict:
    pending = (
        db.query(func.count(models.Transaction.id))
        .filter(models.Transaction.status == TransactionStatus.PENDING.value)
        .scalar()
    )
    completed = (
        db.query(func.count(models.Transaction.id))
        .filter(models.Transaction.status.in_([s.value for s in SUCCESS_STATUSES]))
        .scalar()
    )
    revenue = db.query(func.coalesce(func.sum(models.Transaction.fee), 0)).scalar()
    pending_kyc = (
        db.query(func.count(models.Profile.id))
        .filter(
            models.Profile.verified.is_(False),
            (models.Profile.id_document_url.isnot(None)) | (models.Profile.selfie_url.isnot(None)),
        )
        .scalar()
    )
    total_users = db.query(func.count(models.Profile.id)).scalar()
    return {
        "pending_transactions": pending or 0,
        "completed_transactions": completed or 0,
        "revenue": to_money(revenue or 0),
        "pending_kyc": pending_kyc or 0,
        "total_users": total_users or 0,
    }
