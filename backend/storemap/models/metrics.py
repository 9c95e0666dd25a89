from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storemap.core.db import Base


class GrowthMetric(Base):
    """
    Period-over-period growth KPIs for one store and one upload date.
    Fields:
        - store_id: foreign key to stores
        - period: upload date, the version axis used by the timeline
        - year_comparison: label such as "2025 vs 2024"
        - revenue_growth_pct, orders_growth_pct, ticket_growth_pct:
          decimal fractions (0.157 means +15.7%)
    """
    __tablename__ = "growth_metrics"
    __table_args__ = (
        UniqueConstraint("store_id", "period", "year_comparison", name="uq_growth_store_period_comparison"),
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    period = Column(Date, nullable=False)
    year_comparison = Column(String(50), nullable=False)
    revenue_growth_pct = Column(Float, nullable=True)
    orders_growth_pct = Column(Float, nullable=True)
    ticket_growth_pct = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False)

    store = relationship("Store", back_populates="growth_metrics")


class AbsoluteMetric(Base):
    """
    Raw sales, order and ticket counts for one store and one upload date.
    """
    __tablename__ = "absolute_metrics"
    __table_args__ = (
        UniqueConstraint("store_id", "period", name="uq_absolute_store_period"),
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    period = Column(Date, nullable=False)
    mes = Column(String(20), nullable=True)
    ventas = Column(Float, nullable=True)
    ordenes = Column(Integer, nullable=True)
    tickets = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False)

    store = relationship("Store", back_populates="absolute_metrics")
