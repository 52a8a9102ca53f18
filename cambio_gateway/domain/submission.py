"""Transaction submission flow - final gate before the back office"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
from cambio_gateway.domain.conversion import can_process
from cambio_gateway.domain.exceptions import BackofficeAPIError, WindowNotOpenError
from cambio_gateway.domain.models import ConversionRequest, TransactionRecord, WalkInClient
from cambio_gateway.domain.session import SessionGate
from cambio_gateway.domain.workbench import ConversionWorkbench
from cambio_gateway.infrastructure.observability.logging import log_submission
from cambio_gateway.infrastructure.observability.metrics import record_submission

INCOMPLETE_FIELDS = "Complete all required fields"
NO_OPEN_WINDOW = "No open teller window. Open a window first."
CURRENCY_CONFIGURATION_ERROR = "Currency configuration error"
ACCEPTED = "Transaction processed successfully"
NOT_PROCESSED = "The transaction could not be processed"


class TransactionGateway(Protocol):
    async def submit_conversion(self, request: ConversionRequest) -> TransactionRecord: ...


class SubmissionFailure(str, Enum):
    """Why a submission did not reach, or was refused by, the back office"""

    INPUT = "rejected_input"
    WINDOW = "rejected_window"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class SubmissionOutcome:
    """User-facing result of a submission attempt"""

    success: bool
    message: str
    transaction: Optional[TransactionRecord] = None
    failure: Optional[SubmissionFailure] = None


class TransactionSubmissionFlow:
    """Validate the live calculation against the session and submit it"""

    def __init__(self, gate: SessionGate, workbench: ConversionWorkbench, gateway: TransactionGateway):
        self._gate = gate
        self._workbench = workbench
        self._gateway = gateway

    async def submit(
        self,
        client_id: Optional[int] = None,
        walk_in_client: Optional[WalkInClient] = None,
    ) -> SubmissionOutcome:
        """
        Submit the current conversion.

        Flow:
        1. Calculation must be valid with a rate selected
        2. Window must be OPEN (checked here, not trusted from the caller)
        3. Rate must carry both currency ids
        4. Send to the back office; clear the form on success

        Expected failures come back as an unsuccessful outcome, never raised.
        Working state is untouched unless the back office accepts.
        """
        start_time = time.time()
        selection = self._workbench.selection
        result = self._workbench.result
        rate = selection.rate
        operation = selection.operation_kind.value

        def reject(failure: SubmissionFailure, message: str) -> SubmissionOutcome:
            session = self._gate.session
            record_submission(failure.value)
            log_submission(
                session.window_id if session else None,
                operation,
                False,
                (time.time() - start_time) * 1000,
                reason=message,
            )
            return SubmissionOutcome(success=False, message=message, failure=failure)

        if rate is None or not can_process(result):
            return reject(SubmissionFailure.INPUT, INCOMPLETE_FIELDS)

        try:
            session = self._gate.require_open()
        except WindowNotOpenError:
            return reject(SubmissionFailure.WINDOW, NO_OPEN_WINDOW)

        if not rate.origin_currency_id or not rate.destination_currency_id:
            return reject(SubmissionFailure.INPUT, CURRENCY_CONFIGURATION_ERROR)

        request = ConversionRequest(
            window_id=session.window_id,
            rate_id=rate.id,
            origin_currency_id=rate.origin_currency_id,
            destination_currency_id=rate.destination_currency_id,
            source_amount=result.source_amount,
            operation_kind=selection.operation_kind,
            client_id=client_id,
            walk_in_client=walk_in_client,
            notes=self._workbench.preferential_note,
        )

        try:
            transaction = await self._gateway.submit_conversion(request)
        except BackofficeAPIError as e:
            failure = SubmissionFailure.TIMEOUT if e.timeout else SubmissionFailure.FAILED
            return reject(failure, str(e) or NOT_PROCESSED)

        self._workbench.clear()

        record_submission("accepted", operation, float(result.source_amount))
        log_submission(session.window_id, operation, True, (time.time() - start_time) * 1000)
        return SubmissionOutcome(success=True, message=ACCEPTED, transaction=transaction)
