import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from turapay import models
from turapay.auth import get_optional_user
from turapay.database import get_db
from turapay.errors import TuraPayError
from turapay.schemas.requests import CollectionRequest, DisbursementRequest
from turapay.services.collection import handle_collection
from turapay.services.disbursement import handle_disbursement

logger = logging.getLogger(__name__)

router = APIRouter()


def _internal_error(function_name: str, e: Exception) -> JSONResponse:
    logger.exception(f"Error in {function_name} function")
    return JSONResponse({"error": str(e) or "Unknown error occurred"}, status_code=500)


@router.options("/lipila-deposit", include_in_schema=False)
@router.options("/lipila-disbursement", include_in_schema=False)
def preflight():
    return Response(status_code=204)


@router.post("/lipila-deposit")
async def lipila_deposit(
    request: CollectionRequest,
    user: Optional[models.Profile] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Pull funds from the authenticated payer.

    - Without referenceId: start a card or mobile-money collection
    - With referenceId: return the gateway's status payload for that attempt
    """
    try:
        result = await handle_collection(request, user, db)
    except TuraPayError:
        raise
    except Exception as e:
        return _internal_error("lipila-deposit", e)
    return JSONResponse(result.body, status_code=result.status_code)


@router.post("/lipila-disbursement")
async def lipila_disbursement(request: DisbursementRequest, db: Session = Depends(get_db)):
    """
    Push funds to a receiver's mobile wallet.

    A status check reporting Successful marks transactionId completed.
    """
    try:
        result = await handle_disbursement(request, db)
    except TuraPayError:
        raise
    except Exception as e:
        return _internal_error("lipila-disbursement", e)
    return JSONResponse(result.body, status_code=result.status_code)
