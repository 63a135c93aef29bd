from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

Report = Callable[..., Awaitable[Any]]


async def run_report(session_factory: async_sessionmaker[AsyncSession], report: Report, *args: Any) -> Any:
    async with session_factory() as db:
        return await report(db, *args)


async def gather_reports(
    session_factory: async_sessionmaker[AsyncSession],
    *calls: tuple[Report, ...],
) -> list[Any]:
    """Run ``(report, *args)`` calls concurrently, one session each.

    The first failure propagates; results of the other reports are dropped.
    """
    tasks = [run_report(session_factory, report, *args) for report, *args in calls]
    return list(await asyncio.gather(*tasks))
