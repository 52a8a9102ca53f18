"""Rate and currency catalog endpoints"""

from typing import List
from fastapi import APIRouter, Depends, Request

from cambio_gateway.api.dependencies import get_request_id, get_workstation, to_http_exception
from cambio_gateway.api.v1.schemas import CurrencySchema, ExchangeRateSchema, RefreshRatesResponse
from cambio_gateway.domain.exceptions import DomainException
from cambio_gateway.workstation import Workstation

router = APIRouter()


@router.get("/rates", response_model=List[ExchangeRateSchema])
async def list_rates(request: Request, workstation: Workstation = Depends(get_workstation)):
    """Active rates of the open window's exchange house (cached 30 s)"""
    try:
        session = workstation.session.require_open()
        rates = await workstation.catalog.active_rates(session.exchange_house_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [ExchangeRateSchema.from_domain(rate) for rate in rates]


@router.post("/rates/refresh", response_model=RefreshRatesResponse)
async def refresh_rates(request: Request, workstation: Workstation = Depends(get_workstation)):
    """Invalidate cached rates; repeated clicks inside the throttle window are dropped"""
    try:
        session = workstation.session.require_open()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    invalidated = workstation.refresh_rates(session.exchange_house_id)
    if invalidated is None:
        return RefreshRatesResponse(refreshed=False)
    return RefreshRatesResponse(refreshed=True, invalidated=invalidated)


@router.get("/currencies", response_model=List[CurrencySchema])
async def list_currencies(request: Request, workstation: Workstation = Depends(get_workstation)):
    try:
        currencies = await workstation.catalog.currencies()
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [CurrencySchema.from_domain(currency) for currency in currencies]
