from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from turapay.auth import require_admin
from turapay.database import get_db
from turapay.schemas.requests import ApproveRequest, KycActionRequest, RejectRequest, SettingUpdate
from turapay.schemas.responses import ProfileResponse, SettingsResponse, StatsResponse, TransactionResponse
from turapay.services import admin, settings, transfers

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(status: Optional[str] = "pending", db: Session = Depends(get_db)):
    return transfers.list_transfers(db, status=status or None, limit=500)


@router.post("/transactions/{transaction_id}/approve", response_model=TransactionResponse)
def approve(transaction_id: str, request: ApproveRequest, db: Session = Depends(get_db)):
    """
    Mark a pending transfer as paid out (deposited by default).

    Requires the mobile-money TID and the sender name from the receipt.
    Returns 409 if the transfer is no longer pending.
    """
    return admin.approve_transaction(
        db,
        transaction_id,
        tid=request.tid,
        sender_name=request.sender_name,
        status=request.status,
        notes=request.notes,
        sender_number=request.sender_number,
        reference=request.reference,
    )


@router.post("/transactions/{transaction_id}/reject", response_model=TransactionResponse)
def reject(transaction_id: str, request: RejectRequest, db: Session = Depends(get_db)):
    return admin.reject_transaction(db, transaction_id, reason=request.reason, notes=request.notes)


@router.get("/settings", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db)):
    return SettingsResponse(settings=settings.list_settings(db))


@router.put("/settings/{key}", response_model=SettingsResponse)
def put_setting(key: str, request: SettingUpdate, db: Session = Depends(get_db)):
    settings.update_setting(db, key, request.value)
    return SettingsResponse(settings=settings.list_settings(db))


@router.post("/profiles/{profile_id}/kyc", response_model=ProfileResponse)
def kyc_action(profile_id: str, request: KycActionRequest, db: Session = Depends(get_db)):
    return admin.set_kyc_status(db, profile_id, request.action)


@router.get("/stats", response_model=StatsResponse)
def stats(db: Session = Depends(get_db)):
    return admin.dashboard_stats(db)
