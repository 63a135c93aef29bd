from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def to_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal('0')
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal('0')


def to_float(value: object) -> float:
    return float(to_decimal(value))


def to_int(value: object) -> int:
    return int(to_decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def seconds_to_minutes(seconds: object) -> int:
    return to_int(to_decimal(seconds) / Decimal('60'))


def format_brl(value: object) -> str:
    # pt-BR grouping: 1.234,50
    amount = to_decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    formatted = f'{amount:,.2f}'
    return formatted.replace(',', '_').replace('.', ',').replace('_', '.')
