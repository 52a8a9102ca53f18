"""Teller window session endpoints: open, pause, resume, close"""

import logging
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Request

from cambio_gateway.api.dependencies import get_request_id, get_workstation, to_http_exception
from cambio_gateway.api.v1.schemas import (
    ClosingSummaryResponse,
    CloseWindowRequest,
    CloseWindowResponse,
    CurrencySchema,
    DiscrepancySchema,
    ExpectedAmountSchema,
    OpenWindowRequest,
    SessionSchema,
    WindowStateResponse,
)
from cambio_gateway.domain.exceptions import DomainException
from cambio_gateway.domain.models import OpeningBalance, Operator, WindowDescriptor
from cambio_gateway.domain.reconciliation import ClosingReconciliation
from cambio_gateway.utils.time_format import format_elapsed
from cambio_gateway.workstation import Workstation

router = APIRouter()


def _window_state(workstation: Workstation) -> WindowStateResponse:
    machine = workstation.session
    session = machine.session
    return WindowStateResponse(
        status=machine.status,
        locked=machine.is_locked,
        session=SessionSchema.from_domain(session) if session is not None else None,
        paused_seconds=machine.paused_seconds,
        paused_elapsed=format_elapsed(machine.paused_seconds),
    )


@router.get("/window", response_model=WindowStateResponse)
async def get_window(workstation: Workstation = Depends(get_workstation)):
    """Current session status, including the paused-for counter"""
    return _window_state(workstation)


@router.post("/window/open", response_model=WindowStateResponse)
async def open_window(
    request_body: OpenWindowRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    """
    Open the teller window.

    Only balances greater than zero are sent to the back office. The local
    session starts only after the back office accepts the opening.
    """
    request_id = get_request_id(request)
    window = WindowDescriptor(
        id=request_body.window_id,
        name=request_body.window_name,
        exchange_house_id=request_body.exchange_house_id,
        exchange_house_name=request_body.exchange_house_name,
    )
    operator = Operator(id=request_body.operator_id, display_name=request_body.operator_name)
    balances = [
        OpeningBalance(currency_id=item.currency_id, amount=item.amount)
        for item in request_body.opening_balances
    ]

    try:
        await workstation.session.open(window, operator, balances, request_body.notes)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    return _window_state(workstation)


@router.post("/window/pause", response_model=WindowStateResponse)
async def pause_window(request: Request, workstation: Workstation = Depends(get_workstation)):
    try:
        workstation.session.pause()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _window_state(workstation)


@router.post("/window/resume", response_model=WindowStateResponse)
async def resume_window(request: Request, workstation: Workstation = Depends(get_workstation)):
    try:
        workstation.session.resume()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _window_state(workstation)


@router.get("/window/closing-summary", response_model=ClosingSummaryResponse)
async def get_closing_summary(request: Request, workstation: Workstation = Depends(get_workstation)):
    """Expected amounts per currency, as computed by the back office"""
    try:
        summary = await workstation.session.fetch_closing_summary()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return ClosingSummaryResponse(
        opening_id=summary.opening_id,
        expected_amounts=[
            ExpectedAmountSchema(
                currency_id=item.currency_id,
                expected_amount=item.expected_amount,
                currency=CurrencySchema.from_domain(item.currency) if item.currency else None,
            )
            for item in summary.expected_amounts
        ],
        total_transactions=summary.total_transactions,
        total_profit=summary.total_profit,
    )


@router.post("/window/close", response_model=CloseWindowResponse)
async def close_window(
    request_body: CloseWindowRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    """
    Close the teller window.

    Flow:
    1. Fetch the current closing summary
    2. Apply the operator's physical counts and confirmations
    3. Refuse unless every currency is confirmed
    4. Process the closing server-side and end the local session
    """
    request_id = get_request_id(request)

    try:
        summary = await workstation.session.fetch_closing_summary()
        reconciliation = ClosingReconciliation.from_summary(summary)
        for count in request_body.counts:
            reconciliation.set_physical_amount(count.currency_id, count.physical_amount)
            reconciliation.set_notes(count.currency_id, count.discrepancy_notes)
            reconciliation.confirm(count.currency_id, count.confirmed)

        discrepancies = []
        for count in reconciliation.counts:
            discrepancy = reconciliation.discrepancy(count.currency_id)
            discrepancies.append(
                DiscrepancySchema(
                    currency_id=count.currency_id,
                    amount=discrepancy.amount,
                    percentage=discrepancy.percentage.quantize(Decimal("0.01")),
                    severity=discrepancy.severity.value,
                )
            )

        await workstation.session.close(reconciliation, request_body.notes)

    except KeyError as e:
        logging.warning(f"Unknown closing currency: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e.args[0]))

    except DomainException as e:
        raise to_http_exception(e, request_id)

    return CloseWindowResponse(status=workstation.session.status, discrepancies=discrepancies)


@router.delete("/window", response_model=WindowStateResponse)
async def discard_window(request: Request, workstation: Workstation = Depends(get_workstation)):
    """Drop the local session without telling the back office (logout)"""
    try:
        workstation.session.discard()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _window_state(workstation)
