"""
Runs the reconciliation jobs once:

1. Retry queued status writes (confirmed payouts that were not recorded)
2. Check every processing disbursement against the gateway

Meant to be scheduled (cron) alongside the webhook, which stays the primary path.
"""
import sys
import os
import asyncio
import logging

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from turapay.config import Config
from turapay.database import SessionLocal
from turapay.gateways import get_gateway
from turapay.services.reconciliation import reconcile_processing_disbursements, retry_reconciliation_items

logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger("reconcile")


async def run():
    db = SessionLocal()
    try:
        items = retry_reconciliation_items(db)
        resolved = sum(1 for item in items if item.state == "resolved")
        logger.info(f"Reconciliation queue: {len(items)} open items, {resolved} resolved")

        counts = await reconcile_processing_disbursements(db, get_gateway())
        logger.info(f"Processing disbursements: {counts}")
    finally:
        db.close()


if __name__ == "__main__":
    asyncio.run(run())
