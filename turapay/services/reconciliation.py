"""
Gateway confirmation and reconciliation.

Three ways a gateway outcome reaches a transaction:
- webhook callbacks (primary)
- the bounded fallback poll over processing disbursements
- retries of status writes that failed after a confirmed payout
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from turapay import models
from turapay.config import Config
from turapay.gateways import BaseGateway, GatewayResponse
from turapay.services.collection import SUCCESSFUL, credit_deposit
from turapay.services.transfers import transition
from turapay.status import TransactionStatus

logger = logging.getLogger(__name__)

PENDING = "Pending"
FAILED = "Failed"
SETTLED_STATUSES = (SUCCESSFUL, FAILED)


def enqueue_reconciliation(
    db: Session,
    transaction_id: str,
    target_status: str,
    reference_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> models.ReconciliationItem:
    item = models.ReconciliationItem(
        transaction_id=transaction_id,
        reference_id=reference_id,
        target_status=target_status,
        reason=reason,
        state="open",
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.warning(
        f"Queued reconciliation #{item.id}: transaction {transaction_id} should be {target_status} "
        f"(reference {reference_id})"
    )
    return item


def apply_disbursement_status(
    db: Session,
    transaction_id: str,
    gateway_status: str,
) -> Optional[models.Transaction]:
    """
    Apply a disbursement outcome to its transaction.

    Successful -> completed (payment_date stamped)
    Failed     -> failed, only for a transaction already handed to the gateway
    Anything else leaves the transaction unchanged.
    """
    txn = db.query(models.Transaction).filter(models.Transaction.id == transaction_id).first()
    if txn is None:
        logger.warning(f"Disbursement outcome {gateway_status} for unknown transaction {transaction_id}")
        return None

    if gateway_status == SUCCESSFUL:
        if txn.status == TransactionStatus.COMPLETED.value:
            return txn
        return transition(db, txn, TransactionStatus.COMPLETED, payment_date=models.utc_now())

    if gateway_status == FAILED and txn.status == TransactionStatus.PROCESSING.value:
        return transition(db, txn, TransactionStatus.FAILED, expected_status=TransactionStatus.PROCESSING)

    return txn


async def handle_gateway_event(db: Session, event, gateway: BaseGateway) -> Dict[str, str]:
    """
    Consume a gateway callback ({referenceId, status, type}).

    The callback only says which reference to look at. The outcome applied
    is the one the gateway reports when asked directly, so a forged or
    replayed callback cannot settle anything on its own.
    """
    logger.info(f"Gateway event {event.type} {event.reference_id}: {event.status}")

    if event.type == "collection":
        deposit = db.query(models.Deposit).filter(models.Deposit.reference_id == event.reference_id).first()
        if deposit is None:
            logger.warning(f"Collection event for unknown reference {event.reference_id}")
            return {"status": "ignored"}

        confirmed = (await gateway.collection_status(event.reference_id)).status
        if confirmed != event.status:
            logger.warning(
                f"Collection {event.reference_id} reported {event.status}, gateway says {confirmed}"
            )
        if confirmed == SUCCESSFUL:
            credit_deposit(db, event.reference_id)
        elif confirmed == FAILED and deposit.credited_at is None:
            deposit.status = FAILED
            db.commit()
        return {"status": "processed"}

    txn = (
        db.query(models.Transaction)
        .filter(models.Transaction.payment_reference == event.reference_id)
        .first()
    )
    if txn is None:
        logger.warning(f"Disbursement event for unknown reference {event.reference_id}")
        return {"status": "ignored"}
    if event.transaction_id and event.transaction_id != txn.id:
        logger.warning(
            f"Disbursement event names {event.transaction_id} but reference "
            f"{event.reference_id} belongs to {txn.id}"
        )
        return {"status": "ignored"}

    confirmed = (await gateway.disbursement_status(event.reference_id)).status
    if confirmed != event.status:
        logger.warning(
            f"Disbursement {event.reference_id} reported {event.status}, gateway says {confirmed}"
        )
    if confirmed not in SETTLED_STATUSES:
        return {"status": "processed"}

    transaction_id = txn.id
    try:
        apply_disbursement_status(db, transaction_id, confirmed)
    except Exception as e:
        db.rollback()
        logger.error(f"Error applying disbursement event to {transaction_id}: {e}")
        if confirmed == SUCCESSFUL:
            enqueue_reconciliation(
                db,
                transaction_id=transaction_id,
                reference_id=event.reference_id,
                target_status=TransactionStatus.COMPLETED.value,
                reason=str(e),
            )
        return {"status": "queued"}
    return {"status": "processed"}


async def poll_until_settled(
    check: Callable[[], Awaitable[GatewayResponse]],
    interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
    sleep=asyncio.sleep,
) -> Optional[GatewayResponse]:
    """
    Poll a status check until it reports Successful/Failed.

    Returns the settling response, or the last response seen once
    max_attempts is exhausted (None if every attempt errored).
    """
    interval = Config.STATUS_POLL_INTERVAL_SECONDS if interval is None else interval
    max_attempts = Config.STATUS_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts

    last = None
    for attempt in range(1, max_attempts + 1):
        try:
            last = await check()
        except Exception as e:
            logger.warning(f"Status check attempt {attempt} failed: {e}")
        else:
            if last.status in SETTLED_STATUSES:
                return last
        if attempt < max_attempts:
            await sleep(interval)

    logger.warning(f"Status still unsettled after {max_attempts} attempts")
    return last


async def reconcile_processing_disbursements(
    db: Session,
    gateway: BaseGateway,
    max_checks: Optional[int] = None,
) -> Dict[str, int]:
    """Fallback job: check every processing disbursement once per run."""
    max_checks = Config.STATUS_POLL_MAX_ATTEMPTS if max_checks is None else max_checks
    counts = {"completed": 0, "failed": 0, "pending": 0, "escalated": 0, "errors": 0}

    txns = (
        db.query(models.Transaction)
        .filter(
            models.Transaction.status == TransactionStatus.PROCESSING.value,
            models.Transaction.payment_reference.isnot(None),
        )
        .all()
    )
    for txn in txns:
        if txn.status_checks >= max_checks:
            counts["escalated"] += 1
            logger.critical(
                f"Transaction {txn.id} still processing after {txn.status_checks} checks; manual review needed"
            )
            continue

        try:
            response = await gateway.disbursement_status(txn.payment_reference)
        except Exception as e:
            counts["errors"] += 1
            logger.error(f"Status check for {txn.id} failed: {e}")
            continue

        txn.status_checks += 1
        db.commit()

        if response.status not in SETTLED_STATUSES:
            counts["pending"] += 1
            continue

        try:
            apply_disbursement_status(db, txn.id, response.status)
        except Exception as e:
            db.rollback()
            counts["errors"] += 1
            logger.error(f"Error applying {response.status} to {txn.id}: {e}")
            if response.status == SUCCESSFUL:
                enqueue_reconciliation(
                    db,
                    transaction_id=txn.id,
                    reference_id=txn.payment_reference,
                    target_status=TransactionStatus.COMPLETED.value,
                    reason=str(e),
                )
            continue
        counts["completed" if response.status == SUCCESSFUL else "failed"] += 1

    return counts


def retry_reconciliation_items(db: Session, max_attempts: Optional[int] = None) -> List[models.ReconciliationItem]:
    """Re-apply queued status writes; escalate items that keep failing."""
    max_attempts = Config.RECONCILIATION_MAX_ATTEMPTS if max_attempts is None else max_attempts
    items = db.query(models.ReconciliationItem).filter(models.ReconciliationItem.state == "open").all()

    for item in items:
        attempts = item.attempts + 1
        try:
            txn = db.query(models.Transaction).filter(models.Transaction.id == item.transaction_id).first()
            if txn is None:
                raise LookupError(f"Transaction {item.transaction_id} not found")
            if txn.status != item.target_status:
                fields = {}
                if item.target_status == TransactionStatus.COMPLETED.value:
                    fields["payment_date"] = txn.payment_date or models.utc_now()
                transition(db, txn, item.target_status, commit=False, **fields)
        except Exception as e:
            db.rollback()
            item.attempts = attempts
            item.last_error = str(e)
            if item.attempts >= max_attempts:
                item.state = "escalated"
                logger.critical(
                    f"Reconciliation #{item.id} for {item.transaction_id} escalated after "
                    f"{item.attempts} attempts: {e}"
                )
            db.commit()
            continue

        item.attempts = attempts
        item.state = "resolved"
        item.resolved_at = models.utc_now()
        db.commit()
        logger.info(f"Reconciliation #{item.id} resolved: {item.transaction_id} is {item.target_status}")

    return items
