from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from storemap.core.db import Base


class UploadHistory(Base):
    """
    Audit row per ingestion run. Written when the run starts and patched
    with the final counts when it ends.
    """
    __tablename__ = "upload_history"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    format_type = Column(String(20), nullable=False)
    period_month = Column(String(7), nullable=False)
    stores_imported = Column(Integer, default=0, nullable=False)
    new_stores = Column(Integer, default=0, nullable=False)
    existing_stores = Column(Integer, default=0, nullable=False)
    closed_stores = Column(Integer, default=0, nullable=False)
    metrics_imported = Column(Integer, default=0, nullable=False)
    total_errors = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
