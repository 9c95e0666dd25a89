from datetime import date
from enum import Enum
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storemap.core.auth import CurrentUser, get_current_user
from storemap.core.db import get_db
from storemap.services import stores as store_service

logger = logging.getLogger(__name__)

router = APIRouter()


class MetricFormat(str, Enum):
    growth = "growth"
    absolute = "absolute"


@router.get("/stores")
def get_stores(
    format: MetricFormat = Query(MetricFormat.growth, description="Metric type to attach"),
    estado: Optional[str] = None,
    formato: Optional[str] = None,
    zona: Optional[str] = None,
    distrito: Optional[str] = None,
    period: Optional[date] = Query(None, description="Upload period (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Stores with their latest metrics, plus the periods available for the timeline."""
    try:
        stores = store_service.list_stores(
            db,
            user.id,
            format.value,
            filters={"estado": estado, "formato": formato, "zona": zona, "distrito": distrito},
            period=period,
        )
        periods = store_service.available_periods(db, user.id, format.value)
    except Exception as e:
        logger.error(f"Error fetching stores for user {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching stores: {str(e)}")

    return {
        "stores": stores,
        "available_periods": periods,
        "selected_period": period.isoformat() if period else None,
        "format": format.value,
        "total": len(stores),
    }


@router.get("/stores/stats")
def get_store_stats(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return store_service.map_stats(db, user.id)
