"""Book-value lookups over a depreciation schedule.

Every query accepts an optional pre-generated ``schedule``; without one the
schedule is generated on the fly. Periods before the schedule starts report
the full unit price and periods after it ends report the salvage value, so
report code can ask about any month without bounds-checking.

Fallback policy: ``ValidationError`` always propagates. Any *other* exception
is logged as a warning and replaced by the asset's unit price, so a single
broken asset cannot take down a report page. This trades correctness for
availability; pass ``strict=True`` (or set ``STRICT_BOOK_VALUES``) to re-raise
instead, e.g. when seeding persisted values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from config.settings import settings
from depreciation_engine.errors import ValidationError
from depreciation_engine.schedule.generator import generate_monthly_schedule, month_index
from depreciation_engine.schedule.models import (
    AssetDepreciationInput,
    DepreciationMethod,
    MonthlyDepreciationRecord,
    parse_date,
)

logger = logging.getLogger(__name__)

MONTHS = range(1, 13)


@dataclass(frozen=True)
class DepreciationSummary:
    """Headline depreciation figures for one asset as of a date."""

    unit_price: Decimal
    salvage_value: Decimal
    depreciable_amount: Decimal
    current_book_value: Decimal
    accumulated_depreciation: Decimal
    remaining_depreciable_amount: Decimal
    method: DepreciationMethod
    useful_life_years: int | Decimal
    service_start_date: date


# ---------------------------------------------------------------------------
# Fallback helpers (shared with the result cache)
# ---------------------------------------------------------------------------


def resolve_strict(strict: bool | None) -> bool:
    return settings.strict_book_values if strict is None else strict


def report_fallback(operation: str, asset: AssetDepreciationInput, **context) -> None:
    """Log a unit-price substitution. Call from inside an ``except`` block."""
    logger.warning(
        "%s failed for asset starting %s; falling back to unit price %s",
        operation,
        asset.service_start_date.isoformat(),
        asset.unit_price,
        exc_info=True,
        extra={
            "depreciation_fallback": True,
            "operation": operation,
            "method": asset.method.value,
            **context,
        },
    )


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def _lookup(
    asset: AssetDepreciationInput,
    schedule: list[MonthlyDepreciationRecord],
    year: int,
    month: int,
) -> Decimal:
    if not schedule:
        return asset.unit_price
    first = schedule[0]
    # Schedules are contiguous, so the offset from the first month is the index
    offset = month_index(year, month) - month_index(first.year, first.month)
    if offset < 0:
        return asset.unit_price
    if offset >= len(schedule):
        return asset.salvage_value
    return schedule[offset].book_value


def _check_month(month: int) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or month not in MONTHS:
        raise ValidationError("month", f"must be an integer 1-12, got {month!r}")


def _check_year(year: int) -> None:
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError("year", f"must be an integer, got {year!r}")


def book_value_for_month(
    asset: AssetDepreciationInput,
    year: int,
    month: int,
    schedule: list[MonthlyDepreciationRecord] | None = None,
    strict: bool | None = None,
) -> Decimal:
    """Book value at the end of a calendar month."""
    _check_year(year)
    _check_month(month)
    try:
        if schedule is None:
            schedule = generate_monthly_schedule(asset)
        return _lookup(asset, schedule, year, month)
    except ValidationError:
        raise
    except Exception:
        if resolve_strict(strict):
            raise
        report_fallback("book_value_for_month", asset, year=year, month=month)
        return asset.unit_price


def book_values_for_year(
    asset: AssetDepreciationInput,
    year: int,
    schedule: list[MonthlyDepreciationRecord] | None = None,
    strict: bool | None = None,
) -> dict[int, Decimal]:
    """Map of month (1-12) to book value for every month of ``year``."""
    _check_year(year)
    try:
        if schedule is None:
            schedule = generate_monthly_schedule(asset)
        return {m: _lookup(asset, schedule, year, m) for m in MONTHS}
    except ValidationError:
        raise
    except Exception:
        if resolve_strict(strict):
            raise
        report_fallback("book_values_for_year", asset, year=year)
        return {m: asset.unit_price for m in MONTHS}


def book_value_as_of(
    asset: AssetDepreciationInput,
    as_of,
    schedule: list[MonthlyDepreciationRecord] | None = None,
    strict: bool | None = None,
) -> Decimal:
    """Book value on a given date.

    Before the service-start date the asset is carried at its unit price,
    even within the start month. Otherwise the value of the month containing
    ``as_of`` is returned.
    """
    as_of = parse_date(as_of, "as_of")
    try:
        if as_of < asset.service_start_date:
            return asset.unit_price
        if schedule is None:
            schedule = generate_monthly_schedule(asset)
        return _lookup(asset, schedule, as_of.year, as_of.month)
    except ValidationError:
        raise
    except Exception:
        if resolve_strict(strict):
            raise
        report_fallback("book_value_as_of", asset, as_of=as_of.isoformat())
        return asset.unit_price


def current_book_value(
    asset: AssetDepreciationInput,
    today: date | None = None,
    schedule: list[MonthlyDepreciationRecord] | None = None,
    strict: bool | None = None,
) -> Decimal:
    """Book value as of today (or an injected ``today`` for tests)."""
    return book_value_as_of(asset, today or date.today(), schedule=schedule, strict=strict)


def depreciation_summary(
    asset: AssetDepreciationInput,
    as_of=None,
    strict: bool | None = None,
) -> DepreciationSummary:
    """Asset-card figures derived from the book value on ``as_of``."""
    current = book_value_as_of(asset, as_of or date.today(), strict=strict)
    return DepreciationSummary(
        unit_price=asset.unit_price,
        salvage_value=asset.salvage_value,
        depreciable_amount=asset.depreciable_amount,
        current_book_value=current,
        accumulated_depreciation=asset.unit_price - current,
        remaining_depreciable_amount=current - asset.salvage_value,
        method=asset.method,
        useful_life_years=asset.useful_life_years,
        service_start_date=asset.service_start_date,
    )
