from sqlalchemy import Column, Integer, String, Float, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storemap.core.db import Base


class Store(Base):
    """
    Physical retail location, scoped to the account that uploaded it.
    Fields:
        - id: Integer primary key
        - user_id: owning account id issued by the auth provider
        - suc_sap: external store code, unique per account
        - sucursal: display name
        - format: brand/format label
        - zona, distrito, estado, municipio, ciudad, calle, colonia, cp: address
        - lat, lon: coordinates, null until geocoded
        - first_seen, last_seen: upload dates bounding the store's appearances
    String lengths double as the truncation limits applied during ingestion.
    """
    __tablename__ = "stores"
    __table_args__ = (
        UniqueConstraint("user_id", "suc_sap", name="uq_stores_user_suc_sap"),
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    suc_sap = Column(String(50), nullable=False)
    sucursal = Column(String(255), nullable=True)
    format = Column(String(50), nullable=False)
    zona = Column(String(50), nullable=True)
    distrito = Column(String(50), nullable=True)
    estado = Column(String(50), nullable=False)
    municipio = Column(String(50), nullable=True)
    ciudad = Column(String(50), nullable=True)
    calle = Column(String(255), nullable=True)
    colonia = Column(String(100), nullable=True)
    cp = Column(String(10), nullable=True)
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    first_seen = Column(Date, nullable=False)
    last_seen = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False)

    growth_metrics = relationship("GrowthMetric", back_populates="store", cascade="all, delete-orphan")
    absolute_metrics = relationship("AbsoluteMetric", back_populates="store", cascade="all, delete-orphan")
