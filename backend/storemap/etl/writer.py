"""
Bulk upsert of normalized metric rows, keyed on each table's natural key.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence
import logging

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storemap.etl.detection import GROWTH
from storemap.etl.normalize import MetricRecord
from storemap.models.metrics import AbsoluteMetric, GrowthMetric

logger = logging.getLogger(__name__)

GROWTH_VALUE_COLUMNS = ("revenue_growth_pct", "orders_growth_pct", "ticket_growth_pct")
ABSOLUTE_VALUE_COLUMNS = ("mes", "ventas", "ordenes", "tickets")

INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class WriteResult:
    metrics_written: int = 0
    errors: List[str] = field(default_factory=list)
    database_calls: int = 0


def upsert_statement(session: Session, model, conflict_columns: Sequence[str], value_columns: Sequence[str]):
    """INSERT ... ON CONFLICT DO UPDATE for the session's database."""
    dialect = session.get_bind().dialect.name
    if dialect not in INSERTS:
        raise ValueError(f"Upserts are not supported on {dialect}")

    stmt = INSERTS[dialect](model.__table__)
    return stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={
            **{name: stmt.excluded[name] for name in value_columns},
            "updated_at": func.now(),
        },
    )


def write_metrics(
    session: Session,
    format_type: str,
    metrics: Sequence[MetricRecord],
    store_ids: Dict[str, int],
    period: date,
    year_comparison: Optional[str] = None,
) -> WriteResult:
    """
    Attach store ids and the period to each metric row and upsert them all.

    Rows whose store could not be resolved are dropped with an error. A
    failed upsert is reported in ``errors`` rather than raised; the stores
    written earlier in the ingestion are already committed and stay.
    """
    result = WriteResult()

    if format_type == GROWTH:
        model = GrowthMetric
        conflict = ("store_id", "period", "year_comparison")
        value_columns = GROWTH_VALUE_COLUMNS
    else:
        model = AbsoluteMetric
        conflict = ("store_id", "period")
        value_columns = ABSOLUTE_VALUE_COLUMNS

    rows = []
    for metric in metrics:
        store_id = store_ids.get(metric.suc_sap)
        if store_id is None:
            result.errors.append(f"Row {metric.row_number}: no store id found for {metric.suc_sap}")
            continue
        row = {"store_id": store_id, "period": period}
        if format_type == GROWTH:
            row["year_comparison"] = year_comparison
        row.update({name: metric.kpis.get(name) for name in value_columns})
        rows.append(row)

    if not rows:
        return result

    try:
        session.execute(upsert_statement(session, model, conflict, value_columns), rows)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Metric upsert into {model.__tablename__} failed: {e}")
        result.errors.append(f"Failed to write metrics: {getattr(e, 'orig', None) or e}")
        return result
    finally:
        result.database_calls += 1

    result.metrics_written = len(rows)
    logger.info(f"Upserted {len(rows)} rows into {model.__tablename__}")
    return result
