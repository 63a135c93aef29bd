from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import get_session_factory
from app.services.metadata_service import get_filter_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/metadata', tags=['metadata'])


@router.get('/filters')
async def filters(session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)):
    try:
        return await get_filter_options(session_factory)
    except Exception:
        logger.exception('Failed to load filter metadata')
        return JSONResponse(status_code=500, content={'message': 'Internal server error'})
