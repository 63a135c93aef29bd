from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace

from sqlalchemy.dialects import postgresql


def row(**values) -> SimpleNamespace:
    return SimpleNamespace(**values)


class FakeResult:
    def __init__(self, rows=None, *, scalar=None) -> None:
        self._rows = list(rows or [])
        self._scalar = scalar

    def one(self):
        if len(self._rows) != 1:
            raise AssertionError(f'expected exactly one row, got {len(self._rows)}')
        return self._rows[0]

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)

    def scalar_one(self):
        return self._scalar


class FakeSession:
    """Answers ``execute`` calls in order and records every statement."""

    def __init__(self, *results: FakeResult) -> None:
        self._results = list(results)
        self.statements = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        if not self._results:
            raise AssertionError('unexpected extra query')
        return self._results.pop(0)


class FakeSessionFactory:
    def __init__(self) -> None:
        self.opened = 0

    def __call__(self):
        return self._session()

    @asynccontextmanager
    async def _session(self):
        self.opened += 1
        yield SimpleNamespace(session_number=self.opened)


def compile_sql(stmt) -> str:
    return ' '.join(str(stmt.compile(dialect=postgresql.dialect())).split())


def compile_params(stmt) -> dict:
    return stmt.compile(dialect=postgresql.dialect()).params
