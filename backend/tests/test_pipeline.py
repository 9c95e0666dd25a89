from datetime import date

import pytest
from sqlalchemy import func, select

from conftest import ABSOLUTE_HEADERS, GROWTH_HEADERS, absolute_row, growth_row
from storemap.etl.errors import MissingColumnsError
from storemap.etl.pipeline import run_import
from storemap.models.metrics import AbsoluteMetric, GrowthMetric
from storemap.models.store import Store
from storemap.models.upload import UploadHistory

USER = "user-1"
DAY_ONE = date(2026, 9, 1)
DAY_TWO = date(2026, 10, 1)


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_growth_import_creates_stores_and_metrics(db):
    rows = [growth_row("1001"), growth_row("1002", revenue="-4%")]
    result = run_import(db, USER, "growth", GROWTH_HEADERS, rows, filename="growth.csv", today=DAY_ONE)

    assert result.stores_processed == 2
    assert result.new_stores == 2
    assert result.existing_stores == 0
    assert result.metrics_imported == 2
    assert result.errors == []

    store = db.execute(select(Store).where(Store.suc_sap == "1001")).scalar_one()
    assert store.user_id == USER
    assert store.first_seen == DAY_ONE
    assert store.last_seen == DAY_ONE
    assert store.lat is None

    metric = db.execute(select(GrowthMetric).where(GrowthMetric.store_id == store.id)).scalar_one()
    assert metric.period == DAY_ONE
    assert metric.year_comparison == "2025 vs 2024"
    assert metric.revenue_growth_pct == pytest.approx(0.157)


def test_reimport_on_same_day_is_idempotent(db):
    rows = [growth_row("1001"), growth_row("1002")]
    run_import(db, USER, "growth", GROWTH_HEADERS, rows, today=DAY_ONE)
    second = run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001", revenue="20%"), growth_row("1002")], today=DAY_ONE)

    assert second.new_stores == 0
    assert second.existing_stores == 2
    assert count(db, Store) == 2
    assert count(db, GrowthMetric) == 2
    values = db.execute(
        select(GrowthMetric.revenue_growth_pct).join(Store).where(Store.suc_sap == "1001")
    ).scalar_one()
    assert values == pytest.approx(0.20)


def test_later_upload_refreshes_last_seen_only(db):
    run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001")], today=DAY_ONE)
    db.execute(Store.__table__.update().values(lat=25.67, lon=-100.31))
    db.commit()

    row = growth_row("1001")
    row[6] = ""  # blank colonia keeps the stored value
    row[5] = "Av. Nueva 5"
    result = run_import(db, USER, "growth", GROWTH_HEADERS, [row], today=DAY_TWO)
    db.expire_all()

    store = db.execute(select(Store)).scalar_one()
    assert result.existing_stores == 1
    assert store.first_seen == DAY_ONE
    assert store.last_seen == DAY_TWO
    assert store.calle == "Av. Nueva 5"
    assert store.colonia == "Centro"
    assert (store.lat, store.lon) == (25.67, -100.31)
    # a new period adds a version instead of overwriting
    assert count(db, GrowthMetric) == 2


def test_stores_are_scoped_per_account(db):
    run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001")], today=DAY_ONE)
    other = run_import(db, "user-2", "growth", GROWTH_HEADERS, [growth_row("1001")], today=DAY_ONE)

    assert other.new_stores == 1
    assert count(db, Store) == 2


def test_absolute_import(db):
    result = run_import(db, USER, "absolute", ABSOLUTE_HEADERS, [absolute_row("2001")], today=DAY_ONE)

    assert result.metrics_imported == 1
    metric = db.execute(select(AbsoluteMetric)).scalar_one()
    assert metric.ventas == 1250000.5
    assert metric.ordenes == 3400
    assert metric.tickets == 3100
    assert metric.mes == "Septiembre"


def test_row_errors_do_not_stop_the_import(db):
    rows = [growth_row("1001"), growth_row(""), growth_row("1001")]
    result = run_import(db, USER, "growth", GROWTH_HEADERS, rows, today=DAY_ONE)

    assert result.stores_processed == 1
    assert result.metrics_imported == 1
    assert len(result.errors) == 2

    response = result.to_response()
    assert response["success"] is True
    assert response["totalErrors"] == 2
    assert response["analytics"]["period_month"] == "2026-09"
    assert response["analytics"]["kpi_columns_found"] == 3


def test_reported_errors_are_capped(db):
    rows = [growth_row("")] * 15
    response = run_import(db, USER, "growth", GROWTH_HEADERS, rows, today=DAY_ONE).to_response()

    assert len(response["errors"]) == 10
    assert response["totalErrors"] == 15


def test_upload_history_records_final_counts(db):
    run_import(db, USER, "growth", GROWTH_HEADERS, [growth_row("1001"), growth_row("")], filename="sep.csv", today=DAY_ONE)

    history = db.execute(select(UploadHistory)).scalar_one()
    assert history.user_id == USER
    assert history.filename == "sep.csv"
    assert history.format_type == "growth"
    assert history.period_month == "2026-09"
    assert history.stores_imported == 1
    assert history.new_stores == 1
    assert history.metrics_imported == 1
    assert history.total_errors == 1
    assert history.closed_stores == 0


def test_missing_columns_write_nothing(db):
    headers = [h for h in GROWTH_HEADERS if h != "Formato"]
    with pytest.raises(MissingColumnsError):
        run_import(db, USER, "growth", headers, [], today=DAY_ONE)

    assert count(db, Store) == 0
    assert count(db, UploadHistory) == 0
