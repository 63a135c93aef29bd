from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import get_session_factory
from app.services.customer_service import get_customers_page_data
from app.services.dashboard_service import get_dashboard_data
from app.services.filter_service import (
    CUSTOMER_SORT,
    PRODUCT_SORT,
    normalize_list_filters,
    normalize_report_filters,
)
from app.services.operational_service import get_operational_data
from app.services.product_service import get_products_page_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/analytics', tags=['analytics'])

INTERNAL_ERROR_MESSAGE = 'Internal server error'


async def _json_body(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _server_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={'message': INTERNAL_ERROR_MESSAGE, 'error': str(exc)})


@router.post('/dashboard')
async def dashboard(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    filters = normalize_report_filters(await _json_body(request))
    try:
        return await get_dashboard_data(session_factory, filters)
    except Exception as exc:
        logger.exception('Failed to load dashboard data')
        return _server_error(exc)


@router.get('/products')
async def products_page(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    filters = normalize_list_filters(request.query_params, sort=PRODUCT_SORT)
    try:
        return await get_products_page_data(session_factory, filters)
    except Exception as exc:
        logger.exception('Failed to load products page data')
        return _server_error(exc)


@router.get('/customers')
async def customers_page(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    filters = normalize_list_filters(request.query_params, sort=CUSTOMER_SORT)
    try:
        return await get_customers_page_data(session_factory, filters)
    except Exception as exc:
        logger.exception('Failed to load customers page data')
        return _server_error(exc)


@router.post('/operational')
async def operational(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    filters = normalize_report_filters(await _json_body(request))
    try:
        return await get_operational_data(session_factory, filters)
    except Exception as exc:
        logger.exception('Failed to load operational data')
        return _server_error(exc)
