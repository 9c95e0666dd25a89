import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storemap.core import config
from storemap.core.auth import CurrentUser, get_current_user
from storemap.core.db import get_db
from storemap.schemas.geocode import GeocodeRequestSchema
from storemap.services.geocode_batch import GeocodeBatchRunner
from storemap.services.geocoding import MapboxGeocoder
from storemap.services.rate_limit import TokenBucket

logger = logging.getLogger(__name__)

router = APIRouter()


def get_geocoder():
    return MapboxGeocoder()


def get_rate_limiter():
    return TokenBucket(rate=config.GEOCODE_RATE_PER_SECOND)


@router.post("/geocode")
def geocode_stores(
    body: GeocodeRequestSchema,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder=Depends(get_geocoder),
    rate_limiter=Depends(get_rate_limiter),
):
    """Geocode the account's stores that still have no coordinates."""
    runner = GeocodeBatchRunner(
        db,
        user.id,
        geocoder=geocoder,
        rate_limiter=rate_limiter,
        smart_threshold=config.GEOCODE_SMART_THRESHOLD,
    )

    if body.dry_run:
        return runner.dry_run(body.mode, body.batch_size)

    if isinstance(geocoder, MapboxGeocoder) and not geocoder.access_token:
        raise HTTPException(status_code=503, detail="Geocoding is not configured")

    try:
        return runner.run(body.mode, body.batch_size).to_response()
    except Exception as e:
        logger.exception(f"Geocoding run failed for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Geocoding failed: {str(e)}")
