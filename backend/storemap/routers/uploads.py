from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from storemap.core.auth import CurrentUser, get_current_user
from storemap.core.db import get_db
from storemap.models.upload import UploadHistory

router = APIRouter()


@router.get("/uploads")
def list_uploads(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    uploads = db.execute(
        select(UploadHistory)
        .where(UploadHistory.user_id == user.id)
        .order_by(UploadHistory.created_at.desc(), UploadHistory.id.desc())
        .limit(limit)
    ).scalars().all()
    return [
        {
            "id": u.id,
            "filename": u.filename,
            "format_type": u.format_type,
            "period_month": u.period_month,
            "stores_imported": u.stores_imported,
            "new_stores": u.new_stores,
            "existing_stores": u.existing_stores,
            "closed_stores": u.closed_stores,
            "metrics_imported": u.metrics_imported,
            "total_errors": u.total_errors,
            "created_at": u.created_at.isoformat() if u.created_at else None,
        }
        for u in uploads
    ]
