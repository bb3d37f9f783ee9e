"""Conversions between PostgREST JSON rows and domain values."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_decimal(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def timestamp_fields(row: dict[str, Any], *names: str) -> dict[str, datetime]:
    """Parsed timestamps for the columns present in ``row``; absent ones keep entity defaults."""
    return {name: parse_datetime(row[name]) for name in names if row.get(name) is not None}


def encode_value(value: Any) -> Any:
    """Encode a domain value for a JSON payload."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def encode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {name: encode_value(value) for name, value in fields.items()}
