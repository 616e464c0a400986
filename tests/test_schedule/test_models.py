"""Tests for depreciation input normalization and validation."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from depreciation_engine.errors import DepreciationError, ValidationError
from depreciation_engine.schedule.models import (
    AssetDepreciationInput,
    DepreciationMethod,
    calculate_salvage_value,
    parse_date,
    to_cents,
    to_decimal,
)


def _asset(**kwargs) -> AssetDepreciationInput:
    params = {
        "unit_price": 5000,
        "service_start_date": "2021-04-01",
        "useful_life_years": 5,
        "salvage_value": 500,
    }
    params.update(kwargs)
    return AssetDepreciationInput(**params)


class TestNormalization:
    def test_money_becomes_decimal(self):
        asset = _asset(unit_price=0.1, salvage_value="0.05")
        assert asset.unit_price == Decimal("0.1")
        assert asset.salvage_value == Decimal("0.05")

    def test_thousands_separator(self):
        assert _asset(unit_price="12,500.50").unit_price == Decimal("12500.50")

    def test_date_string_parsed(self):
        assert _asset().service_start_date == date(2021, 4, 1)

    def test_datetime_truncated(self):
        asset = _asset(service_start_date=datetime(2021, 4, 15, 13, 30))
        assert asset.service_start_date == date(2021, 4, 15)

    def test_iso_with_z_suffix(self):
        assert _asset(service_start_date="2021-04-15T00:00:00.000Z").service_start_date == date(2021, 4, 15)

    def test_us_format(self):
        assert _asset(service_start_date="04/15/2021").service_start_date == date(2021, 4, 15)

    def test_method_parsed_case_insensitive(self):
        assert _asset(method="straight_line").method is DepreciationMethod.STRAIGHT_LINE

    def test_units_per_year_tuple(self):
        asset = _asset(method="UNITS_OF_ACTIVITY", units_total=10, units_per_year=[1, 2])
        assert asset.units_per_year == (Decimal("1"), Decimal("2"))

    def test_derived_amounts(self):
        asset = _asset()
        assert asset.depreciable_amount == Decimal("4500")
        assert asset.total_months == 60

    def test_frozen(self):
        asset = _asset()
        with pytest.raises(AttributeError):
            asset.unit_price = Decimal("1")


class TestValidation:
    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"unit_price": -1, "salvage_value": 0}, "unit_price"),
            ({"salvage_value": -5}, "salvage_value"),
            ({"salvage_value": 5001}, "salvage_value"),
            ({"useful_life_years": 0}, "useful_life_years"),
            ({"useful_life_years": -3}, "useful_life_years"),
            ({"service_start_date": "not-a-date"}, "service_start_date"),
            ({"service_start_date": None}, "service_start_date"),
            ({"method": "WEIRD"}, "method"),
            ({"unit_price": "abc"}, "unit_price"),
            ({"unit_price": None}, "unit_price"),
            ({"unit_price": "NaN"}, "unit_price"),
            ({"declining_rate": -1}, "declining_rate"),
        ],
    )
    def test_rejects(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            _asset(**overrides)
        assert exc_info.value.field == field

    def test_validation_error_hierarchy(self):
        with pytest.raises(ValueError):
            _asset(unit_price=-1)
        with pytest.raises(DepreciationError):
            _asset(unit_price=-1)

    def test_salvage_equal_to_price_allowed(self):
        assert _asset(salvage_value=5000).depreciable_amount == 0

    def test_zero_price_allowed(self):
        assert _asset(unit_price=0, salvage_value=0).unit_price == 0

    def test_units_method_requires_total(self):
        with pytest.raises(ValidationError, match="units_total"):
            _asset(method="UNITS_OF_ACTIVITY", units_per_year=[10])

    def test_units_method_requires_estimates(self):
        with pytest.raises(ValidationError, match="units_per_year"):
            _asset(method="UNITS_OF_ACTIVITY", units_total=100)

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValidationError):
            to_decimal(True, "unit_price")


class TestFractionalUsefulLife:
    def test_rejected_by_default(self):
        with pytest.raises(ValidationError, match="whole number"):
            _asset(useful_life_years=2.5)

    def test_integral_float_accepted(self):
        asset = _asset(useful_life_years=5.0)
        assert asset.useful_life_years == 5
        assert isinstance(asset.useful_life_years, int)

    @patch("depreciation_engine.schedule.models.settings")
    def test_round_policy(self, mock_settings):
        mock_settings.fractional_life_policy = "round"
        asset = _asset(useful_life_years="2.5")
        assert asset.total_months == 30

    @patch("depreciation_engine.schedule.models.settings")
    def test_round_policy_half_up(self, mock_settings):
        mock_settings.fractional_life_policy = "round"
        # 1.125 years = 13.5 months
        assert _asset(useful_life_years="1.125").total_months == 14

    @patch("depreciation_engine.schedule.models.settings")
    def test_round_policy_rejects_zero_months(self, mock_settings):
        mock_settings.fractional_life_policy = "round"
        with pytest.raises(ValidationError, match="zero months"):
            _asset(useful_life_years="0.01")


class TestSalvageHelpers:
    def test_calculate_salvage_value(self):
        assert calculate_salvage_value(5000, 10) == Decimal("500")

    def test_default_zero(self):
        assert calculate_salvage_value(5000) == 0

    def test_percentage_out_of_range(self):
        with pytest.raises(ValidationError, match="residual_percentage"):
            calculate_salvage_value(5000, 150)

    def test_from_residual_percentage(self):
        asset = AssetDepreciationInput.from_residual_percentage(3400, "2021-02-10", 10, residual_percentage=1)
        assert asset.salvage_value == Decimal("34")
        assert asset.method is DepreciationMethod.STRAIGHT_LINE


class TestHelpers:
    def test_parse_date_passthrough(self):
        assert parse_date(date(2020, 1, 1)) == date(2020, 1, 1)

    def test_parse_date_field_name(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date("31/31/2020", "as_of")
        assert exc_info.value.field == "as_of"

    def test_to_cents_half_up(self):
        assert to_cents(Decimal("2.345")) == Decimal("2.35")
        assert to_cents(Decimal("2.344")) == Decimal("2.34")
