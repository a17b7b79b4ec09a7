"""User-side profile updates: KYC details submitted for operator review."""
import logging

from sqlalchemy.orm import Session

from turapay import models
from turapay.errors import ValidationFailed

logger = logging.getLogger(__name__)

KYC_FIELDS = ("id_type", "id_number", "id_document_url", "selfie_url")


def submit_kyc(db: Session, profile: models.Profile, request) -> models.Profile:
    """
    Store the submitted KYC fields on the profile.

    Only fields present in the request are written. Verification itself is
    an operator decision (see admin.set_kyc_status); submitting never
    changes `verified`.
    """
    values = {}
    for field in KYC_FIELDS:
        value = getattr(request, field)
        if value is not None and value.strip():
            values[field] = value.strip()
    if not values:
        raise ValidationFailed("No KYC details provided")

    for field, value in values.items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    logger.info(f"KYC details submitted by {profile.id}: {', '.join(sorted(values))}")
    return profile
