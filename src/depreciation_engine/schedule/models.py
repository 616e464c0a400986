"""Value objects shared by the schedule generator, query layer and cache.

Inputs are normalized on construction: money becomes ``Decimal``, the
service-start date becomes a ``date`` and the method becomes a
``DepreciationMethod``. Anything that cannot be normalized raises
``ValidationError`` immediately so a bad asset never reaches the generator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from config.settings import settings
from depreciation_engine.errors import ValidationError

CENT = Decimal("0.01")
MONTHS_PER_YEAR = 12

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DepreciationMethod(str, Enum):
    STRAIGHT_LINE = "STRAIGHT_LINE"
    DECLINING_BALANCE = "DECLINING_BALANCE"
    DOUBLE_DECLINING = "DOUBLE_DECLINING"
    SUM_OF_YEARS_DIGITS = "SUM_OF_YEARS_DIGITS"
    UNITS_OF_ACTIVITY = "UNITS_OF_ACTIVITY"

    @classmethod
    def parse(cls, value) -> DepreciationMethod:
        """Accept an enum member or its name in any case ("straight_line")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationError("method", f"unsupported depreciation method {value!r}")


class Granularity(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value) -> Granularity:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("granularity", f"expected 'monthly' or 'annual', got {value!r}") from None


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def to_decimal(value, field_name: str) -> Decimal:
    """Convert int/float/str/Decimal to a finite Decimal.

    Floats go through ``str`` so ``0.1`` stays ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(field_name, f"expected a number, got {value!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, int):
            result = Decimal(value)
        elif isinstance(value, float):
            result = Decimal(str(value))
        elif isinstance(value, str):
            result = Decimal(value.strip().replace(",", ""))
        else:
            raise ValidationError(field_name, f"expected a number, got {type(value).__name__}")
    except InvalidOperation:
        raise ValidationError(field_name, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise ValidationError(field_name, f"must be finite, got {value!r}")
    return result


def parse_date(value, field_name: str = "service_start_date") -> date:
    """Parse a date, datetime or date string into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            # ISO strings from JSON payloads, including a trailing "Z"
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    raise ValidationError(field_name, f"not a valid calendar date: {value!r}")


def _useful_life(value) -> int | Decimal:
    years = to_decimal(value, "useful_life_years")
    if years <= 0:
        raise ValidationError("useful_life_years", f"must be greater than zero, got {value!r}")
    if years == years.to_integral_value():
        return int(years)
    if settings.fractional_life_policy == "round":
        if (years * MONTHS_PER_YEAR).to_integral_value(rounding=ROUND_HALF_UP) < 1:
            raise ValidationError("useful_life_years", f"rounds to zero months: {value!r}")
        return years
    raise ValidationError("useful_life_years", f"must be a whole number of years, got {value!r}")


def to_cents(amount: Decimal) -> Decimal:
    """Quantize a money amount to cents (presentation only)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AssetDepreciationInput:
    """Depreciation parameters of a single asset."""

    unit_price: Decimal
    service_start_date: date
    useful_life_years: int | Decimal
    salvage_value: Decimal = Decimal("0")
    method: DepreciationMethod = DepreciationMethod.STRAIGHT_LINE
    declining_rate: Decimal | None = None  # percent, DECLINING_BALANCE only
    units_total: Decimal | None = None  # UNITS_OF_ACTIVITY only
    units_per_year: tuple[Decimal, ...] = field(default=())

    def __post_init__(self):
        unit_price = to_decimal(self.unit_price, "unit_price")
        salvage = to_decimal(self.salvage_value, "salvage_value")
        if unit_price < 0:
            raise ValidationError("unit_price", f"must be non-negative, got {unit_price}")
        if salvage < 0:
            raise ValidationError("salvage_value", f"must be non-negative, got {salvage}")
        if salvage > unit_price:
            raise ValidationError(
                "salvage_value", f"{salvage} exceeds unit price {unit_price}"
            )
        method = DepreciationMethod.parse(self.method)

        rate = None
        if self.declining_rate is not None:
            rate = to_decimal(self.declining_rate, "declining_rate")
            if rate < 0:
                raise ValidationError("declining_rate", f"must be non-negative, got {rate}")

        units_total = None
        if self.units_total is not None:
            units_total = to_decimal(self.units_total, "units_total")
        units_per_year = tuple(to_decimal(u, "units_per_year") for u in self.units_per_year)
        if method is DepreciationMethod.UNITS_OF_ACTIVITY:
            if units_total is None or units_total <= 0:
                raise ValidationError("units_total", "a positive total is required for UNITS_OF_ACTIVITY")
            if not units_per_year:
                raise ValidationError("units_per_year", "estimates are required for UNITS_OF_ACTIVITY")
            if any(u < 0 for u in units_per_year):
                raise ValidationError("units_per_year", "estimates must be non-negative")

        object.__setattr__(self, "unit_price", unit_price)
        object.__setattr__(self, "salvage_value", salvage)
        object.__setattr__(self, "service_start_date", parse_date(self.service_start_date))
        object.__setattr__(self, "useful_life_years", _useful_life(self.useful_life_years))
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "declining_rate", rate)
        object.__setattr__(self, "units_total", units_total)
        object.__setattr__(self, "units_per_year", units_per_year)

    @classmethod
    def from_residual_percentage(
        cls,
        unit_price,
        service_start_date,
        useful_life_years,
        residual_percentage=0,
        method=DepreciationMethod.STRAIGHT_LINE,
        **kwargs,
    ) -> AssetDepreciationInput:
        """Build an input whose salvage value is a percentage of the unit price."""
        salvage = calculate_salvage_value(unit_price, residual_percentage)
        return cls(
            unit_price=unit_price,
            service_start_date=service_start_date,
            useful_life_years=useful_life_years,
            salvage_value=salvage,
            method=method,
            **kwargs,
        )

    @property
    def depreciable_amount(self) -> Decimal:
        return self.unit_price - self.salvage_value

    @property
    def total_months(self) -> int:
        months = Decimal(self.useful_life_years) * MONTHS_PER_YEAR
        return int(months.to_integral_value(rounding=ROUND_HALF_UP))


def calculate_salvage_value(unit_price, residual_percentage=0) -> Decimal:
    """Salvage value = unit_price * residual_percentage / 100."""
    price = to_decimal(unit_price, "unit_price")
    pct = to_decimal(residual_percentage or 0, "residual_percentage")
    if pct < 0 or pct > 100:
        raise ValidationError("residual_percentage", f"must be between 0 and 100, got {pct}")
    return price * pct / 100


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthlyDepreciationRecord:
    """One calendar month of a depreciation schedule."""

    year: int
    month: int  # 1-12
    depreciation_expense: Decimal
    accumulated_depreciation: Decimal
    book_value: Decimal

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def as_dict(self) -> dict:
        """Row for seeding/export, money rounded to cents."""
        return {
            "year": self.year,
            "month": self.month,
            "depreciation_expense": to_cents(self.depreciation_expense),
            "accumulated_depreciation": to_cents(self.accumulated_depreciation),
            "book_value": to_cents(self.book_value),
        }


@dataclass(frozen=True)
class AnnualDepreciationRecord:
    """Twelve consecutive months of useful life rolled into one row."""

    year: int
    depreciation_expense: Decimal
    accumulated_depreciation: Decimal
    book_value: Decimal

    def as_dict(self) -> dict:
        return {
            "year": self.year,
            "depreciation_expense": to_cents(self.depreciation_expense),
            "accumulated_depreciation": to_cents(self.accumulated_depreciation),
            "book_value": to_cents(self.book_value),
        }
