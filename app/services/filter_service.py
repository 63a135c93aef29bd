from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

from app.config import settings

ALL = 'all'
# PostgreSQL OFFSET is a bigint.
MAX_OFFSET = 2**63 - 1


class Period(str, Enum):
    LAST_7_DAYS = '7days'
    LAST_30_DAYS = '30days'
    LAST_90_DAYS = '90days'
    YEAR = 'year'


DEFAULT_PERIOD = Period.LAST_7_DAYS

# Offsets include today, hence 6 for a 7-day window.
_PERIOD_DAY_OFFSETS = {
    Period.LAST_7_DAYS: 6,
    Period.LAST_30_DAYS: 29,
    Period.LAST_90_DAYS: 89,
}


class SortOrder(str, Enum):
    ASC = 'asc'
    DESC = 'desc'


@dataclass(frozen=True)
class ReportFilters:
    period: Period = DEFAULT_PERIOD
    channel: str = ALL
    store: str = ALL

    @property
    def channel_selected(self) -> bool:
        return self.channel != ALL

    @property
    def store_selected(self) -> bool:
        return self.store != ALL


@dataclass(frozen=True)
class SortSpec:
    columns: Mapping[str, str]
    default_column: str
    default_order: SortOrder = SortOrder.DESC

    def resolve(self, sort_by: object, sort_order: object) -> tuple[str, SortOrder]:
        column = self.columns.get(_clean(sort_by), self.columns[self.default_column])
        try:
            order = SortOrder(_clean(sort_order))
        except ValueError:
            order = self.default_order
        return column, order


@dataclass(frozen=True)
class ListFilters:
    search_term: str = ''
    page: int = 1
    limit: int = field(default_factory=lambda: settings.page_size)
    sort_by: str = ''
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


PRODUCT_SORT = SortSpec(
    columns={'price': 'price', 'sales': 'sales', 'quantity': 'quantity'},
    default_column='sales',
)
CUSTOMER_SORT = SortSpec(
    columns={'orderCount': 'order_count', 'totalSpent': 'total_spent', 'avgTicket': 'avg_ticket'},
    default_column='orderCount',
)


def _clean(value: object) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _parse_int(value: object, *, default: int) -> int:
    try:
        return int(_clean(value))
    except ValueError:
        return default


def parse_period(value: object) -> Period:
    # str() of a Period member gives 'Period.YEAR', not its value.
    if isinstance(value, Period):
        return value
    try:
        return Period(_clean(value).lower())
    except ValueError:
        return DEFAULT_PERIOD


def _parse_selection(value: object) -> str:
    cleaned = _clean(value)
    if not cleaned or cleaned.lower() == ALL:
        return ALL
    return cleaned


def _sub_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 Feb in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def period_start_date(period: Period, today: date) -> date:
    if period == Period.YEAR:
        return _sub_years(today, 1)
    return today - timedelta(days=_PERIOD_DAY_OFFSETS.get(period, _PERIOD_DAY_OFFSETS[DEFAULT_PERIOD]))


def period_range(period: Period | str, *, now: datetime | None = None) -> tuple[datetime, datetime]:
    today = (now or datetime.now()).date()
    start_day = period_start_date(parse_period(period), today)
    return datetime.combine(start_day, time.min), datetime.combine(today, time.max)


def normalize_report_filters(raw: Mapping | None) -> ReportFilters:
    raw = raw if isinstance(raw, Mapping) else {}
    return ReportFilters(
        period=parse_period(raw.get('period')),
        channel=_parse_selection(raw.get('channel')),
        store=_parse_selection(raw.get('store')),
    )


def normalize_list_filters(raw: Mapping | None, *, sort: SortSpec) -> ListFilters:
    raw = raw if isinstance(raw, Mapping) else {}

    limit = _parse_int(raw.get('limit'), default=settings.page_size)
    limit = min(max(limit, 1), settings.max_page_size)

    page = _parse_int(raw.get('page'), default=1)
    if page < 1 or (page - 1) * limit > MAX_OFFSET:
        page = 1

    sort_by, sort_order = sort.resolve(raw.get('sortBy'), raw.get('sortOrder'))
    return ListFilters(
        search_term=_clean(raw.get('searchTerm')),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


LIKE_ESCAPE = '/'


def like_pattern(term: str) -> str:
    escaped = term.replace('/', '//').replace('%', '/%').replace('_', '/_')
    return f'%{escaped}%'


def total_pages(total: int, limit: int) -> int:
    if total <= 0 or limit <= 0:
        return 0
    return math.ceil(total / limit)
