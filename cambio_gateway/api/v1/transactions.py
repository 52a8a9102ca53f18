"""POST /v1/transactions - submit the current conversion to the back office"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from cambio_gateway.api.dependencies import get_request_id, get_workstation
from cambio_gateway.api.v1.schemas import (
    SubmitTransactionRequest,
    SubmitTransactionResponse,
    TransactionSchema,
)
from cambio_gateway.domain.models import WalkInClient
from cambio_gateway.domain.submission import SubmissionFailure
from cambio_gateway.workstation import Workstation

router = APIRouter()

FAILURE_STATUS = {
    SubmissionFailure.INPUT: 422,
    SubmissionFailure.WINDOW: 423,
    SubmissionFailure.FAILED: 502,
    SubmissionFailure.TIMEOUT: 503,
}


@router.post("/transactions", response_model=SubmitTransactionResponse)
async def submit_transaction(
    request_body: SubmitTransactionRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    """
    Submit the live calculation as a conversion.

    Incomplete input answers 422 and a paused or closed window 423. A back
    office refusal or outage answers 502, or 503 on timeout. Every failure
    carries the operator-facing message; the form is cleared only on success.
    """
    request_id = get_request_id(request)

    walk_in = None
    if request_body.walk_in_client is not None:
        walk_in = WalkInClient(**request_body.walk_in_client.model_dump())

    outcome = await workstation.submissions.submit(
        client_id=request_body.client_id,
        walk_in_client=walk_in,
    )

    if not outcome.success:
        logging.warning(f"Submission rejected: {outcome.message}", extra={"request_id": request_id})
        raise HTTPException(status_code=FAILURE_STATUS[outcome.failure], detail=outcome.message)

    return SubmitTransactionResponse(
        success=True,
        message=outcome.message,
        transaction=TransactionSchema.from_domain(outcome.transaction),
    )
