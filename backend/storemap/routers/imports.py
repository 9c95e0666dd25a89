import io
import logging

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from storemap.core.auth import CurrentUser, get_current_user
from storemap.core.db import get_db
from storemap.etl.detection import ABSOLUTE, GROWTH, UNKNOWN, detect_format
from storemap.etl.errors import MissingColumnsError, NoKpiColumnsError, StoreWriteError
from storemap.etl.pipeline import run_import
from storemap.schemas.imports import DetectRequestSchema, ImportRequestSchema

logger = logging.getLogger(__name__)

router = APIRouter()


def _import(db: Session, user: CurrentUser, format_type: str, headers, rows, filename):
    try:
        result = run_import(db, user.id, format_type, headers, rows, filename=filename)
    except (MissingColumnsError, NoKpiColumnsError) as e:
        logger.warning(f"Rejected {format_type} upload {filename!r}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except StoreWriteError as e:
        raise HTTPException(
            status_code=500,
            detail={"error": str(e), "details": e.details, "sample_data": e.sample_data},
        )
    except Exception as e:
        logger.exception(f"Unexpected error importing {format_type} metrics: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return result.to_response()


def _check_declared_format(body: ImportRequestSchema, expected: str):
    declared = body.detected_format
    if declared is not None and declared.type != expected:
        raise HTTPException(
            status_code=400,
            detail=f"Detected format '{declared.type}' cannot be imported as {expected} metrics",
        )


@router.post("/import/growth-metrics")
def import_growth_metrics(
    body: ImportRequestSchema,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    _check_declared_format(body, GROWTH)
    return _import(db, user, GROWTH, body.csv_data.headers, body.csv_data.full_data, body.filename)


@router.post("/import/absolute-metrics")
def import_absolute_metrics(
    body: ImportRequestSchema,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    _check_declared_format(body, ABSOLUTE)
    return _import(db, user, ABSOLUTE, body.csv_data.headers, body.csv_data.full_data, body.filename)


@router.post("/import/detect")
def detect_csv_format(body: DetectRequestSchema, user: CurrentUser = Depends(get_current_user)):
    return detect_format(body.headers, body.kpi_headers).to_dict()


@router.post("/import/csv")
def import_csv_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Upload a CSV file directly; the format is detected from its last three headers."""
    try:
        df = pd.read_csv(io.BytesIO(file.file.read()), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid CSV file: {e}")

    headers = [str(h) for h in df.columns]
    detection = detect_format(headers)
    if detection.type == UNKNOWN:
        raise HTTPException(
            status_code=400,
            detail={"error": "Could not detect the file format", "detectedFormat": detection.to_dict()},
        )

    rows = df.values.tolist()
    response = _import(db, user, detection.type, headers, rows, file.filename)
    response["detectedFormat"] = detection.to_dict()
    return response
