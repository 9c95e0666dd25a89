# backend/storemap/etl/pipeline.py

from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Sequence
import logging
import time

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storemap.core.config import MAX_REPORTED_ERRORS
from storemap.etl.normalize import normalize_rows
from storemap.etl.reconcile import reconcile_stores
from storemap.etl.writer import write_metrics
from storemap.models.upload import UploadHistory

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    format_type: str
    period_month: str
    stores_processed: int = 0
    new_stores: int = 0
    existing_stores: int = 0
    metrics_imported: int = 0
    kpi_columns_found: int = 0
    errors: List[str] = field(default_factory=list)
    processing_time_ms: int = 0
    database_calls: int = 0

    def to_response(self) -> dict:
        seconds = self.processing_time_ms / 1000
        return {
            "success": True,
            "analytics": {
                "stores_processed": self.stores_processed,
                "new_stores": self.new_stores,
                "existing_stores": self.existing_stores,
                "metrics_imported": self.metrics_imported,
                "period_month": self.period_month,
                "kpi_columns_found": self.kpi_columns_found,
            },
            "errors": self.errors[:MAX_REPORTED_ERRORS],
            "totalErrors": len(self.errors),
            "performance": {
                "processing_time": self.processing_time_ms,
                "database_calls": self.database_calls,
                "stores_per_second": round(self.stores_processed / seconds) if seconds > 0 else self.stores_processed,
            },
        }


def _start_history(session: Session, user_id: str, filename: str, format_type: str, period_month: str) -> Optional[int]:
    try:
        history = UploadHistory(
            user_id=user_id,
            filename=filename,
            format_type=format_type,
            period_month=period_month,
        )
        session.add(history)
        session.commit()
        return history.id
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to create upload history record: {e}")
        return None


def _finish_history(session: Session, history_id: int, result: ImportResult) -> None:
    try:
        session.execute(
            update(UploadHistory)
            .where(UploadHistory.id == history_id)
            .values(
                stores_imported=result.stores_processed,
                new_stores=result.new_stores,
                existing_stores=result.existing_stores,
                # TODO: count stores seen in earlier uploads but missing from this one
                closed_stores=0,
                metrics_imported=result.metrics_imported,
                total_errors=len(result.errors),
            )
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to update upload history {history_id}: {e}")


def run_import(
    session: Session,
    user_id: str,
    format_type: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    filename: Optional[str] = None,
    today: Optional[date] = None,
) -> ImportResult:
    """
    CSV ingestion pipeline:
    1. Normalize rows → typed store and metric records (whole-file checks raise)
    2. Record the upload in upload_history
    3. Reconcile stores → insert new codes, refresh known ones
    4. Upsert metrics keyed on (store, period[, year_comparison])
    5. Patch the upload history row with the final counts
    """
    started = time.perf_counter()
    today = today or date.today()
    result = ImportResult(format_type=format_type, period_month=today.strftime("%Y-%m"))

    batch = normalize_rows(headers, rows, format_type, today)
    result.errors.extend(batch.errors)
    result.kpi_columns_found = batch.kpi_columns_found

    history_id = _start_history(session, user_id, filename or "unknown.csv", format_type, result.period_month)
    if history_id is not None:
        result.database_calls += 1

    reconciled = reconcile_stores(session, user_id, batch.stores, today)
    result.database_calls += reconciled.database_calls
    result.stores_processed = len(batch.stores)
    result.new_stores = len(reconciled.new_codes)
    result.existing_stores = len(reconciled.existing_codes)

    written = write_metrics(
        session,
        format_type,
        batch.metrics,
        reconciled.store_ids,
        period=today,
        year_comparison=batch.year_comparison,
    )
    result.errors.extend(written.errors)
    result.database_calls += written.database_calls
    result.metrics_imported = written.metrics_written

    if history_id is not None:
        _finish_history(session, history_id, result)
        result.database_calls += 1

    result.processing_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        f"{format_type} import for user {user_id}: {result.stores_processed} stores "
        f"({result.new_stores} new), {result.metrics_imported} metrics, "
        f"{len(result.errors)} errors in {result.processing_time_ms} ms"
    )
    return result
