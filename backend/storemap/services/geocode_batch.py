"""
Geocode Batch Service - fill in coordinates for stores that have none.

A run selects the account's stores lacking lat/lon, decides how many of them
to process from the requested mode, then geocodes them one at a time. Each
success is committed on its own, so an interrupted run keeps its progress and
the next run picks up whatever is still missing.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Protocol
import logging
import math
import time

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storemap.core.config import (
    GEOCODE_DEFAULT_BATCH_SIZE,
    GEOCODE_SMART_THRESHOLD,
    MAX_REPORTED_ERRORS,
    MEXICO_BOUNDS,
    BoundingBox,
)
from storemap.models.store import Store
from storemap.services.geocoding import GeocodeMatch, GeocodingError, build_full_address

logger = logging.getLogger(__name__)

DRY_RUN_SAMPLE_SIZE = 5


class GeocodeMode(str, Enum):
    SMART = "smart"
    ALL = "all"
    BATCH = "batch"


class RunState(str, Enum):
    IDLE = "idle"
    SELECTING_BATCH = "selecting_batch"
    GEOCODING = "geocoding"
    DONE = "done"
    PARTIALLY_DONE = "partially_done"


class Geocoder(Protocol):
    def geocode(self, address: str) -> GeocodeMatch: ...


class RateLimiter(Protocol):
    def acquire(self) -> float: ...


@dataclass
class PendingStore:
    id: int
    suc_sap: str
    address: str
    lat: Optional[float] = None
    lon: Optional[float] = None


@dataclass
class StoreGeocodeResult:
    store_id: int
    suc_sap: str
    success: bool
    lat: Optional[float] = None
    lon: Optional[float] = None
    address_used: Optional[str] = None
    provider_result: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}
@dataclass
class BatchSelection:
    """Pending stores split into the geocodable ones picked for this run and the ones with no address."""
    total_pending: int
    selected: List[PendingStore]
    without_address: List[PendingStore]


@dataclass
class GeocodeRunResult:
    state: RunState
    mode: GeocodeMode
    # geocodable stores only; address-less stores never count as remaining
    total_pending: int
    processed: int = 0
    successful: int = 0
    skipped: int = 0
    results: List[StoreGeocodeResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    calls_made: int = 0
    processing_time_ms: int = 0

    @property
    def failed(self) -> int:
        return self.processed - self.successful

    @property
    def remaining(self) -> int:
        return self.total_pending - (self.processed - self.skipped)

    @property
    def next_batch_recommended(self) -> bool:
        return self.remaining > 0

    def to_response(self) -> dict:
        return {
            "success": True,
            "state": self.state.value,
            "mode": self.mode.value,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "remaining": self.remaining,
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors[:MAX_REPORTED_ERRORS],
            "totalErrors": len(self.errors),
            "nextBatchRecommended": self.next_batch_recommended,
            "performance": {
                "processing_time": self.processing_time_ms,
                "calls_made": self.calls_made,
            },
        }


def select_batch_size(
    mode: GeocodeMode,
    total_pending: int,
    batch_size: int = GEOCODE_DEFAULT_BATCH_SIZE,
    smart_threshold: int = GEOCODE_SMART_THRESHOLD,
) -> int:
    """
    How many of ``total_pending`` stores one run should process.

    Smart mode takes everything when the backlog is small (first-time setup
    in one click) and falls back to fixed batches otherwise.
    """
    if mode == GeocodeMode.ALL:
        return total_pending
    if mode == GeocodeMode.SMART and total_pending <= smart_threshold:
        return total_pending
    return min(max(batch_size, 0), total_pending)


class GeocodeBatchRunner:
    def __init__(
        self,
        session: Session,
        user_id: str,
        geocoder: Geocoder,
        rate_limiter: RateLimiter,
        bounds: BoundingBox = MEXICO_BOUNDS,
        smart_threshold: int = GEOCODE_SMART_THRESHOLD,
        rate_per_second: Optional[float] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.session = session
        self.user_id = user_id
        self.geocoder = geocoder
        self.rate_limiter = rate_limiter
        self.bounds = bounds
        self.smart_threshold = smart_threshold
        self.rate_per_second = rate_per_second or getattr(rate_limiter, "rate", None)
        self._now = now
        self.state = RunState.IDLE

    def pending_stores(self) -> List[PendingStore]:
        stores = self.session.execute(
            select(Store)
            .where(Store.user_id == self.user_id)
            .where(or_(Store.lat.is_(None), Store.lon.is_(None)))
            .order_by(Store.id)
        ).scalars().all()
        return [
            PendingStore(id=s.id, suc_sap=s.suc_sap, address=build_full_address(s), lat=s.lat, lon=s.lon)
            for s in stores
        ]

    def select(self, mode: GeocodeMode, batch_size: int) -> BatchSelection:
        """
        Pick this run's stores. Stores with no address data are set aside
        first so they never take a slot a geocodable store could use.
        """
        self.state = RunState.SELECTING_BATCH
        pending = self.pending_stores()
        geocodable = [store for store in pending if store.address]
        without_address = [store for store in pending if not store.address]
        count = select_batch_size(mode, len(geocodable), batch_size, self.smart_threshold)
        logger.info(
            f"{len(pending)} stores without coordinates for user {self.user_id} "
            f"({len(without_address)} without address); selecting {count} ({mode.value})"
        )
        return BatchSelection(
            total_pending=len(geocodable),
            selected=geocodable[:count],
            without_address=without_address,
        )

    def dry_run(self, mode: GeocodeMode, batch_size: int = GEOCODE_DEFAULT_BATCH_SIZE) -> dict:
        """Selection and address building only: no provider calls, no writes."""
        selection = self.select(mode, batch_size)
        self.state = RunState.IDLE
        calls = len(selection.selected)
        return {
            "dryRun": True,
            "mode": mode.value,
            "totalStoresWithoutCoords": selection.total_pending + len(selection.without_address),
            "storesWithoutAddress": len(selection.without_address),
            "batchSize": calls,
            "estimatedCalls": calls,
            "estimatedSeconds": math.ceil(calls / self.rate_per_second) if self.rate_per_second else None,
            "sampleStores": [
                {
                    "suc_sap": store.suc_sap,
                    "address": store.address,
                    "current_coords": {"lat": store.lat, "lon": store.lon},
                }
                for store in selection.selected[:DRY_RUN_SAMPLE_SIZE]
            ],
        }

    def run(self, mode: GeocodeMode, batch_size: int = GEOCODE_DEFAULT_BATCH_SIZE) -> GeocodeRunResult:
        started = time.perf_counter()
        selection = self.select(mode, batch_size)
        run = GeocodeRunResult(state=RunState.GEOCODING, mode=mode, total_pending=selection.total_pending)
        self.state = RunState.GEOCODING

        selected = selection.selected
        for index, store in enumerate(selected, start=1):
            logger.debug(f"Geocoding {index}/{len(selected)}: {store.suc_sap}")
            self._record(run, store, self._geocode_store(store, run))

        # reported on every run, never sent to the provider
        for store in selection.without_address:
            run.skipped += 1
            self._record(run, store, self._geocode_store(store, run))

        run.state = RunState.DONE if run.failed == 0 and run.remaining == 0 else RunState.PARTIALLY_DONE
        self.state = run.state
        run.processing_time_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"Geocoding batch complete for user {self.user_id}: "
            f"{run.successful}/{run.processed} successful, {run.remaining} remaining"
        )
        return run

    @staticmethod
    def _record(run: GeocodeRunResult, store: PendingStore, outcome: StoreGeocodeResult) -> None:
        run.results.append(outcome)
        run.processed += 1
        if outcome.success:
            run.successful += 1
        else:
            run.errors.append(f"Store {store.suc_sap}: {outcome.error}")

    def _geocode_store(self, store: PendingStore, run: GeocodeRunResult) -> StoreGeocodeResult:
        result = StoreGeocodeResult(store_id=store.id, suc_sap=store.suc_sap, success=False)

        if not store.address:
            result.error = "no address data"
            return result
        result.address_used = store.address

        try:
            self.rate_limiter.acquire()
            run.calls_made += 1
            match = self.geocoder.geocode(store.address)
        except GeocodingError as e:
            logger.warning(f"Geocoding failed for {store.suc_sap}: {e}")
            result.error = str(e)
            return result
        except Exception as e:
            logger.exception(f"Unexpected error geocoding {store.suc_sap}: {e}")
            result.error = str(e)
            return result

        if not self.bounds.contains(match.lat, match.lon):
            result.error = f"location outside bounds: {match.lat}, {match.lon}"
            logger.warning(f"Rejected {store.suc_sap}: {result.error}")
            return result

        try:
            self.session.execute(
                update(Store)
                .where(Store.id == store.id)
                .values(lat=match.lat, lon=match.lon, updated_at=self._now())
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error updating store {store.suc_sap}: {e}")
            result.error = f"Database update failed: {e}"
            return result

        result.success = True
        result.lat = match.lat
        result.lon = match.lon
        result.provider_result = match.place_name
        logger.info(f"Geocoded {store.suc_sap} -> {match.lat}, {match.lon}")
        return result
