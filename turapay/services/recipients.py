"""
Saved recipients: receivers a user keeps on file for quick sends.

Every lookup is scoped to the owning user; another user's recipient is
reported as not found.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from turapay import models
from turapay.errors import RecipientNotFound, ValidationFailed

logger = logging.getLogger(__name__)


PAYOUT_METHODS = {"Airtel Money", "MTN Money", "Manual"}


def _clean(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationFailed(f"{field} is required")
    return value


def _check_payout_method(payout_method: str) -> str:
    payout_method = _clean(payout_method, "Payout method")
    if payout_method not in PAYOUT_METHODS:
        raise ValidationFailed(f"Unsupported payout method: {payout_method}")
    return payout_method


def list_recipients(db: Session, user_id: str) -> List[models.Recipient]:
    return (
        db.query(models.Recipient)
        .filter(models.Recipient.user_id == user_id)
        .order_by(models.Recipient.created_at.desc())
        .all()
    )


def get_recipient(db: Session, user_id: str, recipient_id: str) -> models.Recipient:
    recipient = (
        db.query(models.Recipient)
        .filter(models.Recipient.id == recipient_id, models.Recipient.user_id == user_id)
        .first()
    )
    if recipient is None:
        raise RecipientNotFound(f"Recipient {recipient_id} not found")
    return recipient


def create_recipient(db: Session, user_id: str, request) -> models.Recipient:
    recipient = models.Recipient(
        user_id=user_id,
        full_name=_clean(request.full_name, "Full name"),
        phone_number=_clean(request.phone_number, "Phone number"),
        payout_method=_check_payout_method(request.payout_method),
        country=(request.country or "Zambia").strip(),
    )
    db.add(recipient)
    db.commit()
    db.refresh(recipient)
    logger.info(f"Recipient {recipient.id} added by {user_id}")
    return recipient


def update_recipient(db: Session, user_id: str, recipient_id: str, request) -> models.Recipient:
    """Overwrite the fields present in request; absent fields are kept."""
    recipient = get_recipient(db, user_id, recipient_id)
    if request.full_name is not None:
        recipient.full_name = _clean(request.full_name, "Full name")
    if request.phone_number is not None:
        recipient.phone_number = _clean(request.phone_number, "Phone number")
    if request.payout_method is not None:
        recipient.payout_method = _check_payout_method(request.payout_method)
    if request.country is not None:
        recipient.country = _clean(request.country, "Country")
    db.commit()
    db.refresh(recipient)
    return recipient


def delete_recipient(db: Session, user_id: str, recipient_id: str) -> None:
    recipient = get_recipient(db, user_id, recipient_id)
    db.delete(recipient)
    db.commit()
    logger.info(f"Recipient {recipient_id} deleted by {user_id}")
