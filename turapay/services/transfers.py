"""
Transfer lifecycle service.

Orchestrates:
1. Server-side limit checks (verification + max transfer)
2. Fee / exchange-rate snapshot at creation
3. Insert the Transaction with status=pending
4. Guarded status transitions (whitelist + optimistic concurrency)
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from turapay import models
from turapay.errors import (
    InvalidAmount,
    StatusConflict,
    TransactionNotFound,
    TransferLimitExceeded,
    ValidationFailed,
)
from turapay.services.fees import build_quote, to_decimal
from turapay.services.settings import get_decimal_setting
from turapay.status import TransactionStatus, ensure_transition

logger = logging.getLogger(__name__)


def check_transfer_limits(db: Session, sender: models.Profile, amount: Decimal) -> None:
    """Raise TransferLimitExceeded when amount exceeds what sender may send."""
    if not sender.verified:
        unverified_limit = get_decimal_setting(db, "unverified_send_limit")
        if amount > unverified_limit:
            raise TransferLimitExceeded(
                f"Unverified accounts can send up to {unverified_limit}. "
                "Please verify your account to send more."
            )
    max_limit = get_decimal_setting(db, "max_transfer_limit")
    if amount > max_limit:
        raise TransferLimitExceeded(f"Maximum transfer amount is {max_limit}")


def quote_transfer(db: Session, amount, exchange_rate):
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidAmount()
    fee_percentage = get_decimal_setting(db, "transfer_fee_percentage")
    return build_quote(amount, fee_percentage, exchange_rate)


def create_transfer(db: Session, sender: models.Profile, request, exchange_rate) -> models.Transaction:
    """
    Create a pending transfer for sender.

    Limits are checked against the same session that inserts the row, so a
    client that skips its own checks cannot exceed them.

    Raises:
        InvalidAmount: amount missing or not positive
        ValidationFailed: receiver phone missing
        TransferLimitExceeded: amount above the sender's limit
    """
    if request.amount is None or to_decimal(request.amount) <= 0:
        raise InvalidAmount()
    if not (request.receiver_phone or "").strip():
        raise ValidationFailed("Receiver phone is required")

    quote = quote_transfer(db, request.amount, exchange_rate)
    check_transfer_limits(db, sender, quote.amount)

    txn = models.Transaction(
        sender_id=sender.id,
        receiver_name=(request.receiver_name or request.receiver_phone).strip(),
        receiver_phone=request.receiver_phone.strip(),
        receiver_country=request.receiver_country,
        amount=quote.amount,
        fee=quote.fee,
        total_amount=quote.total_amount,
        currency=request.currency.upper(),
        receiver_currency=request.receiver_currency.upper(),
        exchange_rate=quote.exchange_rate,
        payout_amount=quote.payout_amount,
        payout_method=request.payout_method,
        payment_proof_url=request.payment_proof_url,
        sender_name=request.sender_name,
        status=TransactionStatus.PENDING.value,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    logger.info(f"Transfer {txn.id} created by {sender.id}: amount={txn.amount} fee={txn.fee}")
    return txn


def get_transfer(db: Session, transaction_id: str) -> models.Transaction:
    txn = db.query(models.Transaction).filter(models.Transaction.id == transaction_id).first()
    if txn is None:
        raise TransactionNotFound(f"Transaction {transaction_id} not found")
    return txn


def list_transfers(
    db: Session,
    sender_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
) -> List[models.Transaction]:
    query = db.query(models.Transaction)
    if sender_id:
        query = query.filter(models.Transaction.sender_id == sender_id)
    if status:
        query = query.filter(models.Transaction.status == status)
    return query.order_by(models.Transaction.created_at.desc()).limit(limit).all()


def transition(
    db: Session,
    txn: models.Transaction,
    target,
    expected_status=None,
    commit: bool = True,
    **fields,
) -> models.Transaction:
    """
    Move txn to target status and write any extra fields in the same update.

    The write is conditional on the status and version read from txn, so
    a concurrent writer that got there first makes this one fail with
    StatusConflict instead of silently overwriting.

    Raises:
        StatusConflict: txn is not in expected_status, or changed under us
        IllegalTransition: current -> target is not whitelisted
    """
    target = TransactionStatus(target)
    current = txn.status
    if expected_status is not None and current != TransactionStatus(expected_status).value:
        raise StatusConflict(
            f"Transaction {txn.id} is {current}, expected {TransactionStatus(expected_status).value}"
        )
    ensure_transition(current, target)

    values = dict(fields)
    values["status"] = target.value
    values["version"] = txn.version + 1
    values["updated_at"] = models.utc_now()

    updated = (
        db.query(models.Transaction)
        .filter(
            models.Transaction.id == txn.id,
            models.Transaction.status == current,
            models.Transaction.version == txn.version,
        )
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        db.rollback()
        raise StatusConflict(f"Transaction {txn.id} was modified concurrently")

    if commit:
        db.commit()
    db.refresh(txn)
    logger.info(f"Transaction {txn.id}: {current} -> {target.value}")
    return txn


def attach_payment_proof(
    db: Session,
    txn: models.Transaction,
    payment_proof_url: str,
    sender_name: Optional[str] = None,
) -> models.Transaction:
    if txn.status != TransactionStatus.PENDING.value:
        raise StatusConflict(f"Cannot attach proof to a {txn.status} transaction")
    if not (payment_proof_url or "").strip():
        raise ValidationFailed("Payment proof URL is required")
    txn.payment_proof_url = payment_proof_url.strip()
    if sender_name:
        txn.sender_name = sender_name.strip()
    db.commit()
    db.refresh(txn)
    return txn
