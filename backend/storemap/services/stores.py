"""
Stores Service - read side of the map dashboard.

Growth KPIs are persisted as decimal fractions; this is the only place they
are turned into percentage units.
"""
from datetime import date
from typing import Dict, List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storemap.etl.detection import GROWTH
from storemap.models.metrics import AbsoluteMetric, GrowthMetric
from storemap.models.store import Store

logger = logging.getLogger(__name__)

# query parameter -> Store column
STORE_FILTERS = {
    "estado": Store.estado,
    "formato": Store.format,
    "zona": Store.zona,
    "distrito": Store.distrito,
}

GROWTH_FIELDS = ("revenue_growth_pct", "orders_growth_pct", "ticket_growth_pct")
ABSOLUTE_FIELDS = ("ventas", "ordenes", "tickets")


def to_percentage(value: Optional[float]) -> Optional[float]:
    """0.157 -> 15.7"""
    if value is None:
        return None
    return round(value * 100, 2)


def period_display_name(period: date, year_comparison: Optional[str] = None) -> str:
    label = period.strftime("%d/%m/%Y")
    return f"{label} · {year_comparison}" if year_comparison else label


def _owned_store_ids(user_id: str):
    return select(Store.id).where(Store.user_id == user_id)


def latest_metrics(session: Session, user_id: str, format_type: str, period: Optional[date] = None) -> Dict[int, object]:
    """Most recent metric row per store, optionally restricted to one period."""
    model = GrowthMetric if format_type == GROWTH else AbsoluteMetric
    ranked = select(
        model.id,
        func.row_number().over(
            partition_by=model.store_id,
            order_by=(model.period.desc(), model.updated_at.desc(), model.id.desc()),
        ).label("row_rank"),
    ).where(model.store_id.in_(_owned_store_ids(user_id)))
    if period is not None:
        ranked = ranked.where(model.period == period)
    ranked = ranked.subquery()

    query = select(model).join(ranked, model.id == ranked.c.id).where(ranked.c.row_rank == 1)
    return {metric.store_id: metric for metric in session.execute(query).scalars()}


def _serialize_store(store: Store, metric, format_type: str) -> dict:
    data = {
        "id": store.id,
        "suc_sap": store.suc_sap,
        "sucursal": store.sucursal,
        "formato": store.format,
        "zona": store.zona,
        "distrito": store.distrito,
        "estado": store.estado,
        "municipio": store.municipio,
        "ciudad": store.ciudad,
        "calle": store.calle,
        "colonia": store.colonia,
        "cp": store.cp,
        "lat": store.lat,
        "lon": store.lon,
        "first_seen": store.first_seen.isoformat() if store.first_seen else None,
        "last_seen": store.last_seen.isoformat() if store.last_seen else None,
        "created_at": store.created_at.isoformat() if store.created_at else None,
        "updated_at": store.updated_at.isoformat() if store.updated_at else None,
        "metric_period": metric.period.isoformat() if metric is not None else None,
    }
    if format_type == GROWTH:
        for name in GROWTH_FIELDS:
            data[name] = to_percentage(getattr(metric, name)) if metric is not None else None
        data["year_comparison"] = metric.year_comparison if metric is not None else None
    else:
        for name in ABSOLUTE_FIELDS:
            data[name] = getattr(metric, name) if metric is not None else None
        data["mes"] = metric.mes if metric is not None else None
    return data


def list_stores(
    session: Session,
    user_id: str,
    format_type: str = GROWTH,
    filters: Optional[Dict[str, Optional[str]]] = None,
    period: Optional[date] = None,
) -> List[dict]:
    query = select(Store).where(Store.user_id == user_id).order_by(Store.suc_sap)
    for name, value in (filters or {}).items():
        if value:
            query = query.where(STORE_FILTERS[name] == value)

    stores = session.execute(query).scalars().all()
    metrics = latest_metrics(session, user_id, format_type, period)
    return [_serialize_store(store, metrics.get(store.id), format_type) for store in stores]


def available_periods(session: Session, user_id: str, format_type: str = GROWTH) -> List[dict]:
    """Distinct upload periods with metrics for this account, newest first."""
    if format_type == GROWTH:
        rows = session.execute(
            select(GrowthMetric.period, GrowthMetric.year_comparison)
            .where(GrowthMetric.store_id.in_(_owned_store_ids(user_id)))
            .distinct()
            .order_by(GrowthMetric.period.desc(), GrowthMetric.year_comparison)
        ).all()
        return [
            {
                "period": row.period.isoformat(),
                "year_comparison": row.year_comparison,
                "display_name": period_display_name(row.period, row.year_comparison),
            }
            for row in rows
        ]

    rows = session.execute(
        select(AbsoluteMetric.period)
        .where(AbsoluteMetric.store_id.in_(_owned_store_ids(user_id)))
        .distinct()
        .order_by(AbsoluteMetric.period.desc())
    ).all()
    return [
        {
            "period": row.period.isoformat(),
            "year_comparison": None,
            "display_name": period_display_name(row.period),
        }
        for row in rows
    ]


def map_stats(session: Session, user_id: str) -> dict:
    row = session.execute(
        select(
            func.count(Store.id).label("total"),
            func.count(Store.id).filter(Store.lat.is_not(None), Store.lon.is_not(None)).label("with_coordinates"),
        ).where(Store.user_id == user_id)
    ).one()
    total = row.total or 0
    with_coords = row.with_coordinates or 0
    return {
        "total": total,
        "with_coordinates": with_coords,
        "without_coordinates": total - with_coords,
        "coordinates_coverage": round(with_coords / total * 100, 1) if total else 0.0,
    }
