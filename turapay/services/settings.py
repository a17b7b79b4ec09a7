"""
Operator-tunable settings stored in the flat `settings` key/value table.

Values are stored as text. An update overwrites the active value; there is
no history.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict

from sqlalchemy.orm import Session

from turapay import models
from turapay.errors import ValidationFailed

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = {
    "transfer_fee_percentage": "2",
    "unverified_send_limit": "20",
    "max_transfer_limit": "1000",
    "referral_percentage": "5",
    "referral_enabled": "true",
    "card_payments_enabled": "true",
    "payment_number": "",
    "payment_recipient_name": "",
}

NUMERIC_SETTINGS = {
    "transfer_fee_percentage",
    "unverified_send_limit",
    "max_transfer_limit",
    "referral_percentage",
}
BOOLEAN_SETTINGS = {"referral_enabled", "card_payments_enabled"}


def seed_default_settings(db: Session) -> int:
    """Insert any missing default keys. Returns the number inserted."""
    existing = {row.key for row in db.query(models.Setting.key).all()}
    inserted = 0
    for key, value in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.add(models.Setting(key=key, value=value))
            inserted += 1
    if inserted:
        db.commit()
        logger.info(f"Seeded {inserted} default settings")
    return inserted


def get_setting(db: Session, key: str) -> str:
    row = db.query(models.Setting).filter(models.Setting.key == key).first()
    if row is None:
        return DEFAULT_SETTINGS.get(key, "")
    return row.value


def get_decimal_setting(db: Session, key: str) -> Decimal:
    raw = get_setting(db, key)
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        logger.warning(f"Setting {key}={raw!r} is not numeric, using default")
        return Decimal(DEFAULT_SETTINGS[key])


def get_bool_setting(db: Session, key: str) -> bool:
    return str(get_setting(db, key)).strip().lower() in {"1", "true", "yes", "on"}


def list_settings(db: Session) -> Dict[str, str]:
    values = dict(DEFAULT_SETTINGS)
    for row in db.query(models.Setting).all():
        values[row.key] = row.value
    return values


def update_setting(db: Session, key: str, value) -> models.Setting:
    value = str(value).strip()
    if key in NUMERIC_SETTINGS:
        try:
            number = Decimal(value)
        except InvalidOperation:
            raise ValidationFailed(f"Setting {key} must be numeric")
        if number < 0:
            raise ValidationFailed(f"Setting {key} must not be negative")
    elif key in BOOLEAN_SETTINGS:
        value = value.lower()
        if value not in {"true", "false"}:
            raise ValidationFailed(f"Setting {key} must be true or false")

    row = db.query(models.Setting).filter(models.Setting.key == key).first()
    if row is None:
        row = models.Setting(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    db.commit()
    db.refresh(row)
    logger.info(f"Setting {key} updated to {value!r}")
    return row
