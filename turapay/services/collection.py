"""
Collection handler ("lipila-deposit"): pull funds from a payer.

Create path  -> new reference id, POST to the gateway, record a Deposit.
Status path  -> GET gateway status for referenceId, pass the payload through,
                credit the Deposit once it reports Successful.

Repeated creates with the same input are separate attempts with separate
reference ids; nothing is de-duplicated here.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from turapay import gateways, models
from turapay.config import Config
from turapay.errors import GatewayRejected, InvalidAmount, MissingCardDetails, Unauthorized
from turapay.services.fees import to_decimal, to_money

logger = logging.getLogger(__name__)

SUCCESSFUL = "Successful"


class PaymentResult:
    def __init__(self, status_code: int, body: Dict[str, Any]):
        self.status_code = status_code
        self.body = body


def has_card_details(request) -> bool:
    return all(
        (value or "").strip()
        for value in (request.card_number, request.card_expiry, request.card_cvv, request.cardholder_name)
    )


def build_collection_payload(request, reference_id: str, currency: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "amount": request.amount,
        "currency": currency,
        "referenceId": reference_id,
    }
    if has_card_details(request):
        payload.update({
            "paymentType": "Card",
            "cardNumber": request.card_number.replace(" ", "").replace("-", ""),
            "cardExpiry": request.card_expiry,
            "cardCVV": request.card_cvv,
            "cardholderName": request.cardholder_name,
        })
        if request.account_number:
            payload["accountNumber"] = request.account_number
    else:
        payload.update({
            "paymentType": "MobileMoney",
            "accountNumber": request.account_number,
        })
    return payload


def credit_deposit(db: Session, reference_id: str) -> Optional[models.Deposit]:
    """Credit a successful deposit to its payer exactly once."""
    deposit = db.query(models.Deposit).filter(models.Deposit.reference_id == reference_id).first()
    if deposit is None:
        logger.warning(f"No deposit recorded for reference {reference_id}")
        return None
    if deposit.credited_at is not None:
        return deposit

    profile = db.query(models.Profile).filter(models.Profile.id == deposit.user_id).first()
    if profile is None:
        logger.error(f"Deposit {reference_id} belongs to unknown profile {deposit.user_id}")
        return deposit

    profile.balance = to_money(to_decimal(profile.balance or 0) + to_decimal(deposit.amount))
    deposit.status = SUCCESSFUL
    deposit.credited_at = models.utc_now()
    db.commit()
    logger.info(f"Credited {deposit.amount} {deposit.currency} to {profile.id} (reference {reference_id})")
    return deposit


async def handle_collection(request, user: Optional[models.Profile], db: Session) -> PaymentResult:
    """
    Raises:
        Unauthorized, InvalidAmount, MissingCardDetails, GatewayMisconfigured,
        GatewayRejected
    """
    if user is None:
        raise Unauthorized()
    if request.amount is None or request.amount <= 0:
        raise InvalidAmount()

    currency = (request.currency or Config.DEFAULT_COLLECTION_CURRENCY).upper()

    if not request.reference_id and not (request.account_number or has_card_details(request)):
        raise MissingCardDetails()

    gateway = gateways.get_gateway()

    if request.reference_id:
        logger.info(f"Checking collection status for reference {request.reference_id}")
        response = await gateway.collection_status(request.reference_id)
        logger.info(f"Collection status response: {response.data}")
        if response.status == SUCCESSFUL:
            try:
                credit_deposit(db, request.reference_id)
            except Exception:
                db.rollback()
                logger.exception(f"Error crediting deposit {request.reference_id}")
        return PaymentResult(200 if response.ok else response.status_code, response.data)

    reference_id = str(uuid.uuid4())
    payload = build_collection_payload(request, reference_id, currency)
    logger.info(
        f"Creating collection for user {user.id}: amount={request.amount} "
        f"type={payload['paymentType']} reference={reference_id}"
    )
    response = await gateway.create_collection(payload)

    if not response.ok:
        logger.error(f"Lipila collection rejected ({response.status_code}): {response.text}")
        raise GatewayRejected(
            "Failed to create payment request",
            status_code=response.status_code,
            details=response.text,
        )

    db.add(models.Deposit(
        reference_id=reference_id,
        user_id=user.id,
        amount=to_money(request.amount),
        currency=currency,
        payment_type=payload["paymentType"],
        status="Pending",
    ))
    db.commit()

    logger.info(f"Collection created: {response.data}")
    return PaymentResult(200, {"success": True, "referenceId": reference_id, **response.data})
