from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Channel, Store
from app.services.report_runner import gather_reports


async def list_filter_options(db: AsyncSession, model: type[Store] | type[Channel]) -> list[dict]:
    # Names repeat across ids; the smallest id stands in for each name.
    rows = (
        await db.execute(
            select(func.min(model.id).label('id'), model.name.label('name'))
            .group_by(model.name)
            .order_by(model.name.asc())
        )
    ).all()
    return [{'id': row.id, 'name': row.name} for row in rows]


async def get_filter_options(session_factory: async_sessionmaker[AsyncSession]) -> dict:
    stores, channels = await gather_reports(
        session_factory,
        (list_filter_options, Store),
        (list_filter_options, Channel),
    )
    return {
        'stores': stores,
        'channels': channels,
    }
