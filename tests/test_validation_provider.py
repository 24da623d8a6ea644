import pytest

from cap_pricing.data.provider import PriceTableProvider, ALL_TABLES
from cap_pricing.data.sources import CsvPriceTableSource, InMemoryPriceTableSource
from cap_pricing.data.tables import BLANK_CAP, FABRIC, LOGO, DELIVERY, MOLD, CLOSURE
from cap_pricing.data.validation import validate_rows
from cap_pricing.config.settings import get_package_root
from cap_pricing.errors import DataSourceUnavailableError, PriceTableValidationError

from conftest import make_tables, priced


def test_valid_rows_are_typed():
    """Prices parse to floats keyed by breakpoint; currency formatting is accepted."""
    report = validate_rows(MOLD, [{"size": "Large", "charge_amount": "$1,200.00"}])
    assert report.valid
    assert report.rows[0].charge_amount == 1200.0


@pytest.mark.parametrize("bad_value, message", [
    ("-1.00", "must not be negative"),
    ("abc", "is not a number"),
    ("nan", "is not a number"),
    ("", "is required"),
])
def test_bad_price_rejects_row(bad_value, message):
    """A row with a bad price is rejected and reported; valid rows survive."""
    rows = [
        {"name": "Air Mesh", **priced(1.25, 1.00, 0.90, 0.85, 0.80, 0.75, 0.70)},
        {"name": "Camo", **priced(1.40, bad_value, 1.05, 0.95, 0.90, 0.85, 0.80)},
    ]
    report = validate_rows(FABRIC, rows)

    assert [r.name for r in report.rows] == ["Air Mesh"]
    assert len(report.errors) == 1
    assert report.errors[0].row_number == 2
    assert report.errors[0].field == "price_144"
    assert message in report.errors[0].message


def test_volume_discount_violation_rejected():
    """A larger bracket may never cost more per unit than a smaller one."""
    rows = [{"name": "Snapback", **priced(0.50, 0.60, 0.40, 0.40, 0.40, 0.40, 0.40)}]
    report = validate_rows(CLOSURE, rows)
    assert not report.rows
    assert "volume discount" in report.errors[0].message


def test_duplicate_keys_reported():
    """Keys are case- and whitespace-insensitive; the first row wins."""
    rows = [
        {"tier_name": "Tier 1", **priced(3, 2, 2, 2, 2, 2, 2)},
        {"tier_name": " tier  1 ", **priced(4, 3, 3, 3, 3, 3, 3)},
    ]
    report = validate_rows(BLANK_CAP, rows)
    assert len(report.rows) == 1
    assert report.rows[0].prices[48] == 3.0
    assert "duplicates row 1" in report.errors[0].message


def test_delivery_rows_may_leave_low_brackets_blank():
    """Bulk delivery is only priced from its minimum quantity upward."""
    rows = [
        {"name": "Sea Freight", "min_quantity": "2880", **priced(None, None, None, None, 0.60, 0.45, 0.40)},
        {"name": "Nothing", **priced(None, None, None, None, None, None, None)},
    ]
    report = validate_rows(DELIVERY, rows)
    assert [r.name for r in report.rows] == ["Sea Freight"]
    assert report.rows[0].min_quantity == 2880
    assert 48 not in report.rows[0].prices
    assert report.errors[0].field == "prices"


def test_logo_mold_requirement():
    """Only patch methods with a mold charge type need a mold."""
    report = validate_rows(LOGO, make_tables()[LOGO])
    by_key = {row.key: row for row in report.rows}
    assert by_key["Rubber|Patch|Medium"].requires_mold
    assert by_key["Rubber|Patch|Medium"].mold_size == "Medium"
    assert not by_key["3D Embroidery|Direct|Large"].requires_mold


def test_provider_loads_lazily_and_once(source):
    """Tables are read on first use and then served from memory."""
    provider = PriceTableProvider(source)
    assert source.load_calls == {}

    provider.table(FABRIC)
    provider.table(FABRIC)
    assert source.load_calls == {FABRIC: 1}


def test_provider_keeps_valid_rows_and_records_rejections():
    """Non-strict loading drops only the bad rows."""
    tables = make_tables()
    tables[FABRIC].append({"name": "Broken", **priced(1, 2, 3, 4, 5, 6, 7)})
    provider = PriceTableProvider(InMemoryPriceTableSource(tables))

    fabrics = provider.table(FABRIC)
    assert "Broken" not in fabrics
    assert "air mesh" in fabrics
    assert provider.validation_errors[FABRIC], "rejection should be recorded"


def test_strict_provider_rejects_table():
    """Strict loading refuses a table with any invalid row."""
    tables = make_tables()
    tables[FABRIC].append({"name": "Broken", **priced(1, 2, 3, 4, 5, 6, 7)})
    provider = PriceTableProvider(InMemoryPriceTableSource(tables), strict=True)

    with pytest.raises(PriceTableValidationError) as exc:
        provider.table(FABRIC)
    assert exc.value.errors[0].table == FABRIC


def test_unreachable_table_served_from_fallback():
    """A compiled-in fallback table is tagged so callers can tell."""
    provider = PriceTableProvider(InMemoryPriceTableSource(make_tables(), failing=(BLANK_CAP,)))
    table = provider.table(BLANK_CAP)
    assert table.source == "fallback"
    assert "Tier 1" in table


def test_unreachable_table_without_fallback_raises():
    """No fallback means DataSourceUnavailableError, retried on the next access."""
    source = InMemoryPriceTableSource(make_tables(), failing=(FABRIC,))
    provider = PriceTableProvider(source)

    with pytest.raises(DataSourceUnavailableError) as exc:
        provider.table(FABRIC)
    assert exc.value.category == FABRIC

    source.failing.clear()
    assert len(provider.table(FABRIC)) == 3
    assert source.load_calls[FABRIC] == 2


def test_fallback_can_be_disabled():
    provider = PriceTableProvider(InMemoryPriceTableSource(make_tables(), failing=(BLANK_CAP,)), use_fallback=False)
    with pytest.raises(DataSourceUnavailableError):
        provider.table(BLANK_CAP)


def test_reload_rereads_source(source):
    """reload() drops tables so edited rows are picked up."""
    provider = PriceTableProvider(source)
    provider.table(MOLD)
    source.tables[MOLD] = [{"size": "Medium", "charge_amount": "95.00"}]

    assert provider.table(MOLD).get("medium").charge_amount == 80.0
    provider.reload((MOLD,))
    assert provider.table(MOLD).get("medium").charge_amount == 95.0


def test_load_all_reports_failures():
    provider = PriceTableProvider(InMemoryPriceTableSource(make_tables(), failing=(FABRIC,)))
    results = provider.load_all()
    assert set(results) == set(ALL_TABLES)
    assert results[FABRIC] is not None
    assert results[LOGO] is None


def test_shipped_csv_tables_are_valid():
    """Every shipped CSV row passes validation."""
    source = CsvPriceTableSource(get_package_root() / "data" / "tables")
    provider = PriceTableProvider(source, use_fallback=False, strict=True)

    for name in ALL_TABLES:
        assert len(provider.table(name)) > 0, f"{name} is empty"
        assert not provider.validation_errors[name], f"{name}: {provider.validation_errors[name]}"


def test_missing_csv_file_is_unavailable(tmp_path):
    provider = PriceTableProvider(CsvPriceTableSource(tmp_path), use_fallback=False)
    with pytest.raises(DataSourceUnavailableError):
        provider.table(MOLD)


@pytest.mark.parametrize("charge_type, size", [
    ("Large Mold Charge", "Large"),
    ("large mold charge", "large"),
    ("Large MOLD  CHARGE", "Large"),
    ("Large", "Large"),
])
def test_mold_size_ignores_suffix_case(charge_type, size):
    row = {"name": "Rubber", "application": "Patch", "size": "Large", "mold_charge_type": charge_type,
           **priced(2.50, 2.00, 1.75, 1.60, 1.50, 1.40, 1.30)}
    report = validate_rows(LOGO, [row])
    assert report.rows[0].mold_size == size


def test_logo_naming_unknown_mold_size_rejected():
    """A patch logo must point at a mold charge row that exists."""
    tables = make_tables()
    tables[LOGO].append({"name": "Leather", "application": "Patch", "size": "Jumbo",
                         "mold_charge_type": "Jumbo Mold Charge", **priced(3, 3, 3, 3, 3, 3, 3)})
    tables[LOGO].append({"name": "Leather", "application": "Patch", "size": "Medium",
                         "mold_charge_type": "medium mold charge", **priced(2, 2, 2, 2, 2, 2, 2)})
    provider = PriceTableProvider(InMemoryPriceTableSource(tables))

    logos = provider.table(LOGO)
    assert "Leather|Patch|Jumbo" not in logos
    assert "Leather|Patch|Medium" in logos
    errors = provider.validation_errors[LOGO]
    assert [(e.field, e.value) for e in errors] == [("mold_charge_type", "Jumbo Mold Charge")]


def test_strict_provider_rejects_unknown_mold_reference():
    tables = make_tables()
    tables[MOLD] = [row for row in tables[MOLD] if row["size"] != "Large"]
    provider = PriceTableProvider(InMemoryPriceTableSource(tables), strict=True)

    with pytest.raises(PriceTableValidationError) as exc:
        provider.table(LOGO)
    assert exc.value.errors[0].field == "mold_charge_type"


def test_logo_table_loads_when_mold_table_unreachable():
    """Without a mold table the references cannot be checked; logo rows still load."""
    provider = PriceTableProvider(InMemoryPriceTableSource(make_tables(), failing=(MOLD,)))
    assert len(provider.table(LOGO)) == 4
    assert not provider.validation_errors[LOGO]


def test_fallback_table_retried_after_interval():
    """A fallback table is served only until the retry interval passes."""
    now = [0.0]
    source = InMemoryPriceTableSource(make_tables(), failing=(BLANK_CAP,))
    provider = PriceTableProvider(source, fallback_retry_seconds=30.0, clock=lambda: now[0])

    assert provider.table(BLANK_CAP).source == "fallback"
    source.failing.clear()

    now[0] = 29.0
    assert provider.table(BLANK_CAP).source == "fallback"
    assert source.load_calls[BLANK_CAP] == 1

    now[0] = 30.0
    table = provider.table(BLANK_CAP)
    assert table.source == "table"
    assert table.get("Tier 1").prices[48] == 3.60
    assert source.load_calls[BLANK_CAP] == 2

    now[0] = 1000.0
    provider.table(BLANK_CAP)
    assert source.load_calls[BLANK_CAP] == 2, "a table from the source is not reread"


def test_fallback_kept_while_source_still_down():
    now = [0.0]
    source = InMemoryPriceTableSource(make_tables(), failing=(BLANK_CAP,))
    provider = PriceTableProvider(source, fallback_retry_seconds=10.0, clock=lambda: now[0])

    provider.table(BLANK_CAP)
    now[0] = 10.0
    assert provider.table(BLANK_CAP).source == "fallback"
    assert source.load_calls[BLANK_CAP] == 2
