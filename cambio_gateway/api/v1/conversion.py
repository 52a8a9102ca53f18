"""Conversion working-state endpoints and the stateless calculator"""

from fastapi import APIRouter, Depends, HTTPException, Request

from cambio_gateway.api.dependencies import get_request_id, get_workstation, to_http_exception
from cambio_gateway.api.v1.schemas import (
    AmountRequest,
    CalculateRequest,
    ConversionResultSchema,
    ConversionStateResponse,
    PreferentialRateRequest,
    SelectRateRequest,
)
from cambio_gateway.domain.conversion import calculate_conversion
from cambio_gateway.domain.exceptions import DomainException
from cambio_gateway.domain.models import Currency, ExchangeRate, OperationSelection
from cambio_gateway.workstation import Workstation

router = APIRouter()


def _conversion_state(workstation: Workstation) -> ConversionStateResponse:
    workbench = workstation.workbench
    selection = workbench.selection
    return ConversionStateResponse(
        rate_id=selection.rate.id if selection.rate is not None else None,
        operation=selection.operation_kind,
        source_amount=selection.source_amount,
        override_rate=selection.override_rate,
        override_active=selection.override_active,
        result=ConversionResultSchema.from_domain(workbench.result),
        can_submit=workbench.can_submit,
    )


@router.get("/conversion", response_model=ConversionStateResponse)
async def get_conversion(workstation: Workstation = Depends(get_workstation)):
    return _conversion_state(workstation)


@router.post("/conversion/select", response_model=ConversionStateResponse)
async def select_rate(
    request_body: SelectRateRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    """Select a rate row and operation; any preferential rate is dropped"""
    try:
        session = workstation.session.require_open()
        rate = await workstation.catalog.find_rate(session.exchange_house_id, request_body.rate_id)
        if rate is None:
            raise HTTPException(status_code=404, detail=f"Exchange rate {request_body.rate_id} not found")
        workstation.workbench.select_rate(rate, request_body.operation)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _conversion_state(workstation)


@router.post("/conversion/amount", response_model=ConversionStateResponse)
async def set_amount(
    request_body: AmountRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    try:
        workstation.workbench.set_amount(request_body.amount)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _conversion_state(workstation)


@router.post("/conversion/override", response_model=ConversionStateResponse)
async def apply_preferential_rate(
    request_body: PreferentialRateRequest,
    request: Request,
    workstation: Workstation = Depends(get_workstation),
):
    """Apply a preferential rate; blank text resets to the published rate"""
    try:
        workstation.workbench.apply_preferential_rate(request_body.rate)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _conversion_state(workstation)


@router.delete("/conversion/override", response_model=ConversionStateResponse)
async def reset_preferential_rate(request: Request, workstation: Workstation = Depends(get_workstation)):
    try:
        workstation.workbench.reset_preferential_rate()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _conversion_state(workstation)


@router.delete("/conversion", response_model=ConversionStateResponse)
async def clear_conversion(workstation: Workstation = Depends(get_workstation)):
    """Clear amount and preferential rate; the selected rate row stays"""
    workstation.workbench.clear()
    return _conversion_state(workstation)


@router.post("/conversion/calculate", response_model=ConversionResultSchema)
def calculate(request_body: CalculateRequest):
    """Pure calculation, independent of the window session"""
    rate = ExchangeRate(
        id=0,
        buy_rate=request_body.buy_rate,
        sell_rate=request_body.sell_rate,
        origin_currency=Currency(code="", symbol=""),
        destination_currency=Currency(code="", symbol=""),
    )
    selection = OperationSelection(
        rate=rate,
        operation_kind=request_body.operation,
        source_amount=request_body.amount,
        override_rate=request_body.override_rate or "",
        override_active=request_body.override_rate is not None,
    )
    return ConversionResultSchema.from_domain(calculate_conversion(selection))
