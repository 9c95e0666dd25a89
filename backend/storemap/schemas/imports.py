from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class CSVDataSchema(BaseModel):
    """
    Parsed CSV as sent by the upload wizard: header row plus every data row.
    """
    model_config = ConfigDict(populate_by_name=True)

    headers: List[str]
    full_data: List[List[Any]] = Field(alias="fullData")


class DetectedFormatSchema(BaseModel):
    """
    Client-side format detection result echoed back with the upload.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    confidence: Optional[float] = None
    matched_columns: Optional[List[str]] = Field(default=None, alias="matchedColumns")


class ImportRequestSchema(BaseModel):
    """
    Body of the growth/absolute metric import endpoints.
    """
    model_config = ConfigDict(populate_by_name=True)

    csv_data: CSVDataSchema = Field(alias="csvData")
    filename: Optional[str] = None
    detected_format: Optional[DetectedFormatSchema] = Field(default=None, alias="detectedFormat")


class DetectRequestSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headers: List[str]
    kpi_headers: Optional[List[str]] = Field(default=None, alias="kpiHeaders")
