"""Depreciation schedule generation.

Pure functions that turn an ``AssetDepreciationInput`` into an ordered
month-by-month schedule (or its annual roll-up). Each method is expressed as
a generator of *accumulated* depreciation per month; expense and book value
are derived from consecutive accumulated figures so every method shares the
same flooring rules:

- accumulated never exceeds the depreciable amount
- book value = unit price - accumulated, never below salvage

All arithmetic is ``Decimal`` at full precision. Rounding to cents happens only
in ``as_dict()`` on the output records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from decimal import Decimal

from config.settings import settings
from depreciation_engine.errors import ValidationError
from depreciation_engine.schedule.models import (
    MONTHS_PER_YEAR,
    AnnualDepreciationRecord,
    AssetDepreciationInput,
    DepreciationMethod,
    Granularity,
    MonthlyDepreciationRecord,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    """Shift a (year, month) pair by ``offset`` months, rolling over years."""
    index = year * MONTHS_PER_YEAR + (month - 1) + offset
    new_year, month_index = divmod(index, MONTHS_PER_YEAR)
    return new_year, month_index + 1


def month_index(year: int, month: int) -> int:
    """Absolute month number, handy for distance between two periods."""
    return year * MONTHS_PER_YEAR + (month - 1)


# ---------------------------------------------------------------------------
# Per-method accumulated depreciation
# ---------------------------------------------------------------------------


def _straight_line(asset: AssetDepreciationInput, total: int) -> Iterator[Decimal]:
    depreciable = asset.depreciable_amount
    monthly = depreciable / total
    for i in range(1, total + 1):
        if i == total:
            # Close out exactly; monthly * total can miss by a few ulps
            yield depreciable
        else:
            yield min(monthly * i, depreciable)


def _declining(asset: AssetDepreciationInput, total: int, annual_rate: Decimal) -> Iterator[Decimal]:
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    book = asset.unit_price
    accumulated = _ZERO
    for _ in range(total):
        expense = book * monthly_rate
        if book - expense <= asset.salvage_value:
            # Floor reached: pin to the depreciable amount, later months add nothing
            accumulated = asset.depreciable_amount
        else:
            accumulated += expense
        book = asset.unit_price - accumulated
        yield accumulated


def _sum_of_years_digits(asset: AssetDepreciationInput, total: int) -> Iterator[Decimal]:
    depreciable = asset.depreciable_amount
    digits_sum = Decimal(total * (total + 1)) / 2
    running = 0
    for i in range(1, total + 1):
        running += total - i + 1
        if i == total:
            yield depreciable
        else:
            yield depreciable * running / digits_sum


def _units_of_activity(asset: AssetDepreciationInput, total: int) -> Iterator[Decimal]:
    depreciable = asset.depreciable_amount
    per_unit = depreciable / asset.units_total
    estimates = asset.units_per_year
    accumulated = _ZERO
    for i in range(total):
        life_year = i // MONTHS_PER_YEAR
        units_this_year = estimates[life_year] if life_year < len(estimates) else estimates[-1]
        accumulated = min(accumulated + units_this_year / MONTHS_PER_YEAR * per_unit, depreciable)
        if i == total - 1:
            # Whatever usage estimates left undepreciated lands in the final month
            accumulated = depreciable
        yield accumulated


def _annual_rate(asset: AssetDepreciationInput) -> Decimal:
    if asset.method is DepreciationMethod.DOUBLE_DECLINING:
        return Decimal(2) / Decimal(asset.useful_life_years)
    rate = asset.declining_rate
    if rate is None:
        rate = Decimal(str(settings.default_declining_rate))
    return rate / 100


def _accumulated_series(asset: AssetDepreciationInput, total: int) -> Iterator[Decimal]:
    method = asset.method
    if method is DepreciationMethod.STRAIGHT_LINE:
        return _straight_line(asset, total)
    if method in (DepreciationMethod.DECLINING_BALANCE, DepreciationMethod.DOUBLE_DECLINING):
        return _declining(asset, total, _annual_rate(asset))
    if method is DepreciationMethod.SUM_OF_YEARS_DIGITS:
        return _sum_of_years_digits(asset, total)
    if method is DepreciationMethod.UNITS_OF_ACTIVITY:
        return _units_of_activity(asset, total)
    raise ValidationError("method", f"unsupported depreciation method {method!r}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_monthly_schedule(asset: AssetDepreciationInput) -> list[MonthlyDepreciationRecord]:
    """Compute one record per calendar month of useful life.

    Month 1 is the calendar month containing the service-start date; the
    day of month is ignored (no partial-month proration).

    Args:
        asset: Normalized depreciation parameters.

    Returns:
        ``useful_life_years * 12`` records in ascending (year, month) order.

    Raises:
        ValidationError: if the input is not an ``AssetDepreciationInput`` or
            names an unsupported method.
    """
    if not isinstance(asset, AssetDepreciationInput):
        raise ValidationError("asset", f"expected AssetDepreciationInput, got {type(asset).__name__}")

    total = asset.total_months
    start = asset.service_start_date
    floor = asset.salvage_value
    records: list[MonthlyDepreciationRecord] = []
    previous = _ZERO

    for offset, accumulated in enumerate(_accumulated_series(asset, total)):
        year, month = add_months(start.year, start.month, offset)
        records.append(MonthlyDepreciationRecord(
            year=year,
            month=month,
            depreciation_expense=accumulated - previous,
            accumulated_depreciation=accumulated,
            book_value=max(asset.unit_price - accumulated, floor),
        ))
        previous = accumulated

    logger.debug(
        "Generated %d-month %s schedule from %04d-%02d",
        total, asset.method.value, start.year, start.month,
    )
    return records


def generate_annual_schedule(asset: AssetDepreciationInput) -> list[AnnualDepreciationRecord]:
    """Roll the monthly schedule into consecutive 12-month slices of life.

    Each row is labelled with the calendar year of its first month. For a
    January start the slices coincide with calendar years.
    """
    monthly = generate_monthly_schedule(asset)
    rows: list[AnnualDepreciationRecord] = []
    for start in range(0, len(monthly), MONTHS_PER_YEAR):
        chunk = monthly[start:start + MONTHS_PER_YEAR]
        last = chunk[-1]
        rows.append(AnnualDepreciationRecord(
            year=chunk[0].year,
            depreciation_expense=sum((r.depreciation_expense for r in chunk), _ZERO),
            accumulated_depreciation=last.accumulated_depreciation,
            book_value=last.book_value,
        ))
    return rows


def generate_schedule(
    asset: AssetDepreciationInput,
    granularity: Granularity | str = Granularity.MONTHLY,
) -> list[MonthlyDepreciationRecord] | list[AnnualDepreciationRecord]:
    """Single entry point for both schedule granularities."""
    if Granularity.parse(granularity) is Granularity.ANNUAL:
        return generate_annual_schedule(asset)
    return generate_monthly_schedule(asset)


def chart_points(
    records: list[MonthlyDepreciationRecord] | list[AnnualDepreciationRecord],
) -> list[tuple[str | int, Decimal]]:
    """(label, book value) pairs for plotting a schedule."""
    points: list[tuple[str | int, Decimal]] = []
    for r in records:
        label = r.period if isinstance(r, MonthlyDepreciationRecord) else r.year
        points.append((label, r.book_value))
    return points
