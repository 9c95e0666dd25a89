"""
Split incoming stores into new and already-known codes for one account.

The account's existing codes are read once per ingestion into a local
lookup; new stores go in with a single flush and known stores are refreshed
with a single bulk update, so the number of round-trips does not grow with
the size of the file.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Sequence
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storemap.etl.errors import StoreInsertError, StoreUpdateError
from storemap.etl.normalize import ADDRESS_FIELDS, StoreRecord
from storemap.models.store import Store

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    store_ids: Dict[str, int] = field(default_factory=dict)
    new_codes: List[str] = field(default_factory=list)
    existing_codes: List[str] = field(default_factory=list)
    database_calls: int = 0


def _store_row(user_id: str, record: StoreRecord, today: date) -> dict:
    data = record.model_dump(exclude={"row_number"})
    data.update(user_id=user_id, first_seen=today, last_seen=today)
    return data


def reconcile_stores(
    session: Session,
    user_id: str,
    stores: Sequence[StoreRecord],
    today: date,
) -> ReconcileResult:
    """
    Insert unseen store codes and refresh the ones the account already has.

    ``stores`` must already be free of duplicate codes. Raises
    StoreInsertError or StoreUpdateError if a bulk write is rejected; in that
    case nothing is written. Commits on success.
    """
    result = ReconcileResult()

    existing_rows = session.execute(
        select(Store.id, Store.suc_sap, *[getattr(Store, name) for name in ADDRESS_FIELDS])
        .where(Store.user_id == user_id)
    ).all()
    result.database_calls += 1
    existing = {row.suc_sap: row for row in existing_rows}
    result.store_ids = {code: row.id for code, row in existing.items()}

    to_insert = [record for record in stores if record.suc_sap not in existing]
    to_touch = [record for record in stores if record.suc_sap in existing]

    if to_insert:
        new_rows = [_store_row(user_id, record, today) for record in to_insert]
        new_stores = [Store(**row) for row in new_rows]
        try:
            session.add_all(new_stores)
            session.flush()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store insert failed for user {user_id}: {e}")
            sample = {k: (v.isoformat() if isinstance(v, date) else v) for k, v in new_rows[0].items()}
            raise StoreInsertError(str(getattr(e, "orig", None) or e), sample_data=sample) from e
        result.database_calls += 1
        result.store_ids.update({store.suc_sap: store.id for store in new_stores})
        result.new_codes = [record.suc_sap for record in to_insert]
        logger.info(f"Inserted {len(new_stores)} new stores for user {user_id}")

    if to_touch:
        now = datetime.now()
        params = []
        for record in to_touch:
            current = existing[record.suc_sap]
            row = {"id": current.id, "last_seen": today, "updated_at": now}
            # blank cells never wipe out an address we already have
            for name, value in record.address_fields().items():
                row[name] = value or getattr(current, name)
            params.append(row)
        try:
            session.execute(update(Store), params)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store refresh failed for user {user_id}: {e}")
            raise StoreUpdateError(str(getattr(e, "orig", None) or e)) from e
        result.database_calls += 1
        result.existing_codes = [record.suc_sap for record in to_touch]
        logger.info(f"Refreshed {len(to_touch)} existing stores for user {user_id}")

    session.commit()
    return result
