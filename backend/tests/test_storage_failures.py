from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from conftest import GROWTH_HEADERS, growth_row
from storemap.core.db import get_db
from storemap.etl import writer
from storemap.main import app
from storemap.models.metrics import GrowthMetric
from storemap.models.store import Store


def growth_body(rows):
    return {"csvData": {"headers": GROWTH_HEADERS, "fullData": rows}, "filename": "growth.csv"}


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


class RejectingStoreInserts(Session):
    def flush(self, objects=None):
        if any(isinstance(obj, Store) for obj in self.new):
            raise IntegrityError("INSERT INTO stores", {}, Exception("value too long for type character varying(50)"))
        super().flush(objects)


class RejectingUpdates(Session):
    def execute(self, statement, params=None, **kw):
        if getattr(statement, "is_update", False):
            raise OperationalError("UPDATE stores", {}, Exception("could not obtain lock on row"))
        return super().execute(statement, params, **kw)


def use_session_class(engine, session_class):
    factory = sessionmaker(bind=engine, class_=session_class, autocommit=False, autoflush=False)

    def override_get_db():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db


def test_rejected_store_insert_returns_details_and_writes_nothing(client, engine, db):
    use_session_class(engine, RejectingStoreInserts)

    r = client.post("/import/growth-metrics", json=growth_body([growth_row("1001"), growth_row("1002")]))

    assert r.status_code == 500
    body = r.json()
    assert body["error"].startswith("Failed to insert stores")
    assert body["details"] == "value too long for type character varying(50)"
    assert body["sample_data"]["suc_sap"] == "1001"
    assert body["sample_data"]["user_id"] == "user-1"
    assert count(db, Store) == 0
    assert count(db, GrowthMetric) == 0


def test_rejected_store_refresh_is_surfaced(client, engine, db):
    assert client.post("/import/growth-metrics", json=growth_body([growth_row("1001")])).status_code == 200
    use_session_class(engine, RejectingUpdates)

    r = client.post("/import/growth-metrics", json=growth_body([growth_row("1001")]))

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Failed to update stores: could not obtain lock on row"
    assert body["details"] == "could not obtain lock on row"


def test_failed_metric_upsert_keeps_stores(client, db, monkeypatch):
    def broken_upsert(*args, **kwargs):
        raise OperationalError("INSERT INTO growth_metrics", {}, Exception("deadlock detected"))

    monkeypatch.setattr(writer, "upsert_statement", broken_upsert)

    r = client.post("/import/growth-metrics", json=growth_body([growth_row("1001"), growth_row("1002")]))

    assert r.status_code == 200
    data = r.json()
    assert data["analytics"]["metrics_imported"] == 0
    assert data["analytics"]["new_stores"] == 2
    assert data["errors"] == ["Failed to write metrics: deadlock detected"]
    assert count(db, Store) == 2
    assert count(db, GrowthMetric) == 0
