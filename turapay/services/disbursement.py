"""
Disbursement handler ("lipila-disbursement"): push funds to a receiver's wallet.

The status path is where a gateway confirmation drives a transfer to
completed. If that status write fails, the HTTP response still reports the
gateway status; the mismatch is queued for reconciliation instead.
"""
import logging
import uuid

from sqlalchemy.orm import Session

from turapay import gateways, models
from turapay.config import Config
from turapay.errors import GatewayRejected, InvalidAmount, MissingAccountNumber, TuraPayError
from turapay.services.collection import SUCCESSFUL, PaymentResult
from turapay.services.reconciliation import apply_disbursement_status, enqueue_reconciliation
from turapay.services.transfers import transition
from turapay.status import TransactionStatus

logger = logging.getLogger(__name__)


def _record_disbursement_started(db: Session, transaction_id: str, reference_id: str) -> None:
    txn = db.query(models.Transaction).filter(models.Transaction.id == transaction_id).first()
    if txn is None:
        logger.warning(f"Disbursement {reference_id} created for unknown transaction {transaction_id}")
        return
    if txn.status != TransactionStatus.PENDING.value:
        logger.warning(f"Disbursement {reference_id} created for {txn.status} transaction {transaction_id}")
        return
    transition(
        db,
        txn,
        TransactionStatus.PROCESSING,
        expected_status=TransactionStatus.PENDING,
        payment_reference=reference_id,
    )


async def handle_disbursement(request, db: Session) -> PaymentResult:
    """
    Raises:
        InvalidAmount, MissingAccountNumber, GatewayMisconfigured, GatewayRejected
    """
    if request.amount is None or request.amount <= 0:
        raise InvalidAmount()
    if not (request.account_number or "").strip():
        raise MissingAccountNumber()

    currency = (request.currency or Config.DEFAULT_COLLECTION_CURRENCY).upper()
    gateway = gateways.get_gateway()

    if request.reference_id:
        logger.info(f"Checking disbursement status for reference {request.reference_id}")
        response = await gateway.disbursement_status(request.reference_id)
        logger.info(f"Disbursement status response: {response.data}")

        # Only a confirmed payout moves the record on this path
        if response.status == SUCCESSFUL and request.transaction_id:
            try:
                apply_disbursement_status(db, request.transaction_id, SUCCESSFUL)
            except Exception as e:
                db.rollback()
                logger.error(f"Error updating transaction {request.transaction_id}: {e}")
                try:
                    enqueue_reconciliation(
                        db,
                        transaction_id=request.transaction_id,
                        reference_id=request.reference_id,
                        target_status=TransactionStatus.COMPLETED.value,
                        reason=str(e),
                    )
                except Exception:
                    db.rollback()
                    logger.exception(
                        f"Could not queue reconciliation for {request.transaction_id} "
                        f"(reference {request.reference_id})"
                    )

        return PaymentResult(200 if response.ok else response.status_code, response.data)

    reference_id = str(uuid.uuid4())
    logger.info(f"Creating disbursement: amount={request.amount} reference={reference_id}")
    response = await gateway.create_disbursement({
        "amount": request.amount,
        "currency": currency,
        "accountNumber": request.account_number.strip(),
        "referenceId": reference_id,
        "paymentType": "MobileMoney",
    })

    if not response.ok:
        logger.error(f"Lipila disbursement rejected ({response.status_code}): {response.text}")
        raise GatewayRejected(
            "Failed to create disbursement request",
            status_code=response.status_code,
            details=response.text,
        )

    if request.transaction_id:
        try:
            _record_disbursement_started(db, request.transaction_id, reference_id)
        except TuraPayError as e:
            logger.warning(f"Could not mark {request.transaction_id} processing: {e.message}")

    logger.info(f"Disbursement created: {response.data}")
    return PaymentResult(200, {"success": True, "referenceId": reference_id, **response.data})
