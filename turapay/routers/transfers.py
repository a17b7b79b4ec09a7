from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from turapay import models
from turapay.auth import get_current_user
from turapay.config import Config
from turapay.database import get_db
from turapay.errors import Forbidden, ValidationFailed
from turapay.schemas.requests import SENDER_CURRENCY, PaymentProofRequest, TransferCreate
from turapay.schemas.responses import QuoteResponse, TransactionResponse
from turapay.services import transfers
from turapay.services.rates import rate_service

router = APIRouter()


async def _rate_for(currency: str):
    try:
        return await rate_service.get_rate(currency)
    except LookupError as e:
        raise ValidationFailed(str(e))


@router.get("/quote", response_model=QuoteResponse)
async def quote(
    amount: float = Query(...),
    currency: str = Query(Config.DEFAULT_RECEIVER_CURRENCY, description="Receiver currency"),
    db: Session = Depends(get_db),
):
    """Fee, total and expected payout for a USD amount at the current rate."""
    rate = await _rate_for(currency)
    q = transfers.quote_transfer(db, amount, rate)
    return QuoteResponse(
        amount=q.amount,
        fee=q.fee,
        fee_percentage=q.fee_percentage,
        total_amount=q.total_amount,
        currency=SENDER_CURRENCY,
        receiver_currency=currency.upper(),
        exchange_rate=q.exchange_rate,
        payout_amount=q.payout_amount,
    )


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transfer(
    request: TransferCreate,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a pending transfer.

    Transfer limits are enforced here, against the caller's verification
    status, before the row is inserted.
    """
    rate = await _rate_for(request.receiver_currency)
    return transfers.create_transfer(db, user, request, rate)


@router.get("", response_model=List[TransactionResponse])
def list_my_transfers(
    status: Optional[str] = None,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transfers.list_transfers(db, sender_id=user.id, status=status)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transfer(
    transaction_id: str,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    txn = transfers.get_transfer(db, transaction_id)
    if txn.sender_id != user.id and not user.is_admin:
        raise Forbidden()
    return txn


@router.post("/{transaction_id}/proof", response_model=TransactionResponse)
def upload_proof(
    transaction_id: str,
    request: PaymentProofRequest,
    user: models.Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Attach the sender's proof-of-payment URL for operator review."""
    txn = transfers.get_transfer(db, transaction_id)
    if txn.sender_id != user.id:
        raise Forbidden()
    return transfers.attach_payment_proof(db, txn, request.payment_proof_url, request.sender_name)
