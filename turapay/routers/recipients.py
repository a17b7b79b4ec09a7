from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from turapay import models
from turapay.auth import get_current_user
from turapay.database import get_db
from turapay.schemas.requests import RecipientCreate, RecipientUpdate
from turapay.schemas.responses import RecipientResponse
from turapay.services import recipients

router = APIRouter()


@router.get("", response_model=List[RecipientResponse])
def list_recipients(user: models.Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return recipients.list_recipients(db, user.id)


@router.post("", response_model=RecipientResponse, status_code=201)
def add_recipient(
    request: RecipientCreate,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return recipients.create_recipient(db, user.id, request)


@router.put("/{recipient_id}", response_model=RecipientResponse)
def edit_recipient(
    recipient_id: str,
    request: RecipientUpdate,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return recipients.update_recipient(db, user.id, recipient_id, request)


@router.delete("/{recipient_id}", status_code=204)
def remove_recipient(
    recipient_id: str,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    recipients.delete_recipient(db, user.id, recipient_id)
    return Response(status_code=204)
