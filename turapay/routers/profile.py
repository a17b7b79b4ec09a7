from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from turapay import models
from turapay.auth import get_current_user
from turapay.database import get_db
from turapay.schemas.requests import KycSubmission
from turapay.schemas.responses import ProfileResponse
from turapay.services.profiles import submit_kyc

router = APIRouter()


@router.get("", response_model=ProfileResponse)
def get_profile(user: models.Profile = Depends(get_current_user)):
    return user


@router.post("/kyc", response_model=ProfileResponse)
def submit_kyc_details(
    request: KycSubmission,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit ID details and document URLs.

    Files are uploaded to object storage by the client; only their URLs
    are stored here. An operator then approves or declines the profile.
    """
    return submit_kyc(db, user, request)
