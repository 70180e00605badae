"""
QrSnapshot model - Frozen traceability document published under a public token
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base


class QrSnapshot(Base):
    __tablename__ = "qr_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    lote_id = Column(Integer, ForeignKey("lotes.id"), nullable=False, index=True)
    public_token = Column(String(64), unique=True, nullable=False, index=True)
    # Never updated once inserted
    snapshot_data = Column(JSON, nullable=False)
    scan_count = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    created_by_type = Column(String(10), nullable=False, server_default="system")
    created_by_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    lote = relationship("Lote", back_populates="snapshots")
