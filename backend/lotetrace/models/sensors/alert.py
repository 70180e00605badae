"""
Alert model - Threshold breach derived from a reading
"""
import enum

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base


class AlertType(str, enum.Enum):
    MIN_BREACH = "min_breach"
    MAX_BREACH = "max_breach"


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    sensor_id = Column(Integer, ForeignKey("sensors.id"), nullable=False, index=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False)
    reading_id = Column(Integer, ForeignKey("sensor_readings.id"), nullable=True)

    type = Column(String(20), nullable=False)
    value = Column(Numeric(15, 6), nullable=False)
    threshold = Column(Numeric(15, 6), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sensor = relationship("Sensor", back_populates="alerts")
    zone = relationship("Zone")

    __table_args__ = (
        CheckConstraint("type IN ('min_breach', 'max_breach')", name="ck_alerts_type"),
    )
