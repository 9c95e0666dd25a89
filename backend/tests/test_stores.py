from datetime import date

from conftest import GROWTH_HEADERS, growth_row
from storemap.etl.pipeline import run_import
from storemap.services.stores import available_periods, latest_metrics, list_stores

USER = "user-1"
SEPTEMBER = date(2026, 9, 1)
OCTOBER = date(2026, 10, 1)


def seed(db):
    run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001", revenue="10%"), growth_row("1002", revenue="5%")], today=SEPTEMBER)
    run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001", revenue="12%")], today=OCTOBER)


def test_latest_metric_per_store(db):
    seed(db)

    latest = latest_metrics(db, USER, "growth")

    assert len(latest) == 2
    by_period = {metric.period for metric in latest.values()}
    assert by_period == {SEPTEMBER, OCTOBER}
    stores = {s["suc_sap"]: s for s in list_stores(db, USER, "growth")}
    assert stores["1001"]["revenue_growth_pct"] == 12.0
    assert stores["1001"]["metric_period"] == OCTOBER.isoformat()
    assert stores["1002"]["revenue_growth_pct"] == 5.0


def test_selected_period_pins_the_metric(db):
    seed(db)

    stores = {s["suc_sap"]: s for s in list_stores(db, USER, "growth", period=SEPTEMBER)}
    assert stores["1001"]["revenue_growth_pct"] == 10.0

    october = {s["suc_sap"]: s for s in list_stores(db, USER, "growth", period=OCTOBER)}
    assert october["1002"]["revenue_growth_pct"] is None


def test_other_accounts_metrics_are_invisible(db):
    seed(db)
    assert latest_metrics(db, "user-2", "growth") == {}
    assert available_periods(db, "user-2", "growth") == []


def test_available_periods_newest_first(db):
    seed(db)
    periods = available_periods(db, USER, "growth")
    assert [p["period"] for p in periods] == ["2026-10-01", "2026-09-01"]
    assert periods[0]["display_name"] == "01/10/2026 · 2025 vs 2024"
