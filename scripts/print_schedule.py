"""Print sample depreciation schedules for eyeballing against spreadsheets."""

from datetime import date

from depreciation_engine.query.book_value import book_value_as_of, depreciation_summary
from depreciation_engine.schedule.generator import generate_annual_schedule, generate_monthly_schedule
from depreciation_engine.schedule.models import AssetDepreciationInput, to_cents

SAMPLE_ASSETS = {
    "laptop": AssetDepreciationInput(
        unit_price="10000", service_start_date="2023-01-01", useful_life_years=5, salvage_value="1000",
    ),
    "printer-mid-month": AssetDepreciationInput(
        unit_price="5000", service_start_date="2021-04-15", useful_life_years=5, salvage_value="500",
    ),
    "generator-declining": AssetDepreciationInput(
        unit_price="3400", service_start_date="2021-02-10", useful_life_years=10, salvage_value="34",
        method="DECLINING_BALANCE",
    ),
}


def print_monthly(name: str, asset: AssetDepreciationInput, limit: int = 18) -> None:
    print(f"\n[{name}] {asset.method.value} {asset.unit_price} over {asset.useful_life_years}y")
    print(f"{'period':<8} {'expense':>12} {'accumulated':>14} {'book value':>12}")
    for record in generate_monthly_schedule(asset)[:limit]:
        row = record.as_dict()
        print(
            f"{record.period:<8} {row['depreciation_expense']:>12} "
            f"{row['accumulated_depreciation']:>14} {row['book_value']:>12}"
        )


def print_annual(name: str, asset: AssetDepreciationInput) -> None:
    print(f"\n[{name}] annual roll-up")
    for record in generate_annual_schedule(asset):
        row = record.as_dict()
        print(f"  {row['year']}: dep={row['depreciation_expense']}, book={row['book_value']}")


def main() -> None:
    today = date.today()
    for name, asset in SAMPLE_ASSETS.items():
        print_monthly(name, asset)
        print_annual(name, asset)
        summary = depreciation_summary(asset, today, strict=True)
        print(
            f"  as of {today}: book={to_cents(book_value_as_of(asset, today, strict=True))}, "
            f"accumulated={to_cents(summary.accumulated_depreciation)}"
        )


if __name__ == "__main__":
    main()
