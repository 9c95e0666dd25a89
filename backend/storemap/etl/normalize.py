"""
Turn raw CSV cells into typed store and metric records.

Columns are located by substring search over the headers. Each target field
has its own list of candidate substrings and is resolved independently, so
supporting a new export layout means editing the tables below.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import math
import re

from pydantic import BaseModel

from storemap.etl.detection import ABSOLUTE, GROWTH
from storemap.etl.errors import MissingColumnsError, NoKpiColumnsError

logger = logging.getLogger(__name__)

# (field, candidate substrings, max length)
STORE_COLUMNS: List[Tuple[str, Tuple[str, ...], int]] = [
    ("suc_sap", ("suc", "sap"), 50),
    ("format", ("formato",), 50),
    ("zona", ("zona",), 50),
    ("distrito", ("distrito",), 50),
    ("sucursal", ("sucursal",), 255),
    ("calle", ("calle", "direccion", "address"), 255),
    ("colonia", ("colonia", "col"), 100),
    ("municipio", ("municipio",), 50),
    ("estado", ("estado",), 50),
    ("ciudad", ("ciudad",), 50),
    ("cp", ("cp",), 10),
]

GROWTH_COLUMNS: List[Tuple[str, Tuple[str, ...]]] = [
    ("revenue_growth_pct", (
        "$ crec%", "crec% mt", "revenue", "ventas crec", "crecimiento ventas",
        "crec ventas", "growth revenue", "$ growth",
    )),
    ("orders_growth_pct", (
        "ordenes crec%", "orders crec%", "crec% ordenes", "orders growth",
        "crecimiento ordenes", "crec ordenes",
    )),
    ("ticket_growth_pct", (
        "ticket crec%", "crec% ticket", "ticket growth", "crecimiento ticket",
        "crec ticket", "ticket promedio",
    )),
]

ABSOLUTE_COLUMNS: List[Tuple[str, Tuple[str, ...]]] = [
    ("ventas", ("ventas", "sales")),
    ("ordenes", ("ordenes", "orders")),
    ("tickets", ("tickets", "ticket")),
]

MONTH_COLUMN = ("mes", ("mes",))
MONTH_MAX_LENGTH = 20

REQUIRED_COLUMNS = ("suc_sap", "format", "estado", "sucursal")
REQUIRED_ROW_FIELDS = ("suc_sap", "format", "estado")

YEAR_COMPARISON_PATTERN = re.compile(r"\d{4}\s*vs\.?\s*\d{4}", re.IGNORECASE)
YEAR_COMPARISON_MAX_LENGTH = 50

# Fields refreshed on stores that already exist
ADDRESS_FIELDS = ("sucursal", "zona", "distrito", "estado", "municipio", "ciudad", "calle", "colonia", "cp")


class StoreRecord(BaseModel):
    """Store identity and address as read from one CSV row."""
    row_number: int
    suc_sap: str
    format: str
    estado: str
    sucursal: str = ""
    zona: str = ""
    distrito: str = ""
    municipio: str = ""
    ciudad: str = ""
    calle: str = ""
    colonia: str = ""
    cp: str = ""

    def address_fields(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in ADDRESS_FIELDS}


class MetricRecord(BaseModel):
    row_number: int
    suc_sap: str
    kpis: Dict[str, Any]


@dataclass
class NormalizedBatch:
    stores: List[StoreRecord] = field(default_factory=list)
    metrics: List[MetricRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    rows_skipped: int = 0
    year_comparison: Optional[str] = None
    kpi_columns_found: int = 0


def resolve_columns(headers: Sequence[str], candidates: Sequence[Tuple[str, Tuple[str, ...]]]) -> Dict[str, int]:
    """Map each field to the first header containing any of its substrings, or -1."""
    lowered = [str(h).lower().strip() for h in headers]
    mapping = {}
    for name, terms in candidates:
        mapping[name] = next(
            (i for i, header in enumerate(lowered) if any(term in header for term in terms)),
            -1,
        )
    return mapping


def parse_percentage(value: Any) -> Optional[float]:
    """'15.7%' -> 15.7, '-3,2 %' -> -3.2; blank or garbage -> None."""
    if value is None:
        return None
    cleaned = str(value).replace("%", "").replace(",", ".").strip()
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_number(value: Any) -> Optional[float]:
    """'1,234.50' -> 1234.5; blank or garbage -> None."""
    if value is None:
        return None
    cleaned = str(value).replace(",", "").strip()
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_integer(value: Any) -> Optional[int]:
    parsed = parse_number(value)
    if parsed is None:
        return None
    return int(parsed)


def extract_year_comparison(headers: Sequence[str], today: date) -> str:
    for header in headers:
        match = YEAR_COMPARISON_PATTERN.search(str(header))
        if match:
            return match.group(0).strip()[:YEAR_COMPARISON_MAX_LENGTH]
    return f"{today.year} vs {today.year - 1}"


def _cell(row: Sequence[Any], index: int) -> str:
    if index < 0 or index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def _is_blank(row: Sequence[Any]) -> bool:
    return not row or all(cell is None or not str(cell).strip() for cell in row)


def _growth_values(row, kpi_indices) -> Dict[str, Optional[float]]:
    values = {}
    for name, index in kpi_indices.items():
        pct = parse_percentage(_cell(row, index)) if index != -1 else None
        # stored as a decimal fraction; converted back at read time
        values[name] = pct / 100 if pct is not None else None
    return values


def _absolute_values(row, kpi_indices) -> Dict[str, Any]:
    ventas = kpi_indices["ventas"]
    ordenes = kpi_indices["ordenes"]
    tickets = kpi_indices["tickets"]
    return {
        "ventas": parse_number(_cell(row, ventas)) if ventas != -1 else None,
        "ordenes": parse_integer(_cell(row, ordenes)) if ordenes != -1 else None,
        "tickets": parse_integer(_cell(row, tickets)) if tickets != -1 else None,
    }


def normalize_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    format_type: str,
    today: date,
) -> NormalizedBatch:
    """
    Extract store and metric records from every data row.

    Raises MissingColumnsError or NoKpiColumnsError when the file as a whole
    cannot be ingested. Row-level problems are collected in ``errors`` and
    the offending row is left out; the rest of the file is still processed.
    """
    store_indices = resolve_columns(headers, [(name, terms) for name, terms, _ in STORE_COLUMNS])
    limits = {name: limit for name, _, limit in STORE_COLUMNS}

    missing = [name for name in REQUIRED_COLUMNS if store_indices[name] == -1]
    if missing:
        raise MissingColumnsError(missing)

    kpi_table = GROWTH_COLUMNS if format_type == GROWTH else ABSOLUTE_COLUMNS
    kpi_indices = resolve_columns(headers, kpi_table)
    kpi_found = sum(1 for index in kpi_indices.values() if index != -1)
    if kpi_found == 0:
        raise NoKpiColumnsError(format_type)

    month_index = -1
    if format_type == ABSOLUTE:
        month_index = resolve_columns(headers, [MONTH_COLUMN])["mes"]

    for name, index in {**store_indices, **kpi_indices}.items():
        logger.debug(f"column {name}: {index} {headers[index]!r}" if index != -1 else f"column {name}: not found")

    batch = NormalizedBatch(kpi_columns_found=kpi_found)
    if format_type == GROWTH:
        batch.year_comparison = extract_year_comparison(headers, today)
        logger.info(f"Detected year comparison: {batch.year_comparison}")

    seen_codes = set()
    for i, row in enumerate(rows):
        row_number = i + 1
        if _is_blank(row):
            batch.rows_skipped += 1
            continue

        fields = {
            name: _cell(row, store_indices[name])[:limits[name]]
            for name in store_indices
        }

        if not all(fields[name] for name in REQUIRED_ROW_FIELDS):
            batch.errors.append(f"Row {row_number}: missing required store fields")
            batch.rows_skipped += 1
            continue

        code = fields["suc_sap"]
        if code in seen_codes:
            batch.errors.append(f"Row {row_number}: duplicate store code in file: {code}")
            batch.rows_skipped += 1
            continue
        seen_codes.add(code)

        batch.stores.append(StoreRecord(row_number=row_number, **fields))

        if format_type == GROWTH:
            values = _growth_values(row, kpi_indices)
        else:
            values = _absolute_values(row, kpi_indices)

        # rows without any KPI still register the store
        if all(v is None for v in values.values()):
            continue

        if month_index != -1:
            values["mes"] = _cell(row, month_index)[:MONTH_MAX_LENGTH] or None

        batch.metrics.append(MetricRecord(row_number=row_number, suc_sap=code, kpis=values))

    logger.info(
        f"Normalized {len(batch.stores)} stores and {len(batch.metrics)} metric rows "
        f"({batch.rows_skipped} skipped, {len(batch.errors)} errors)"
    )
    return batch
