"""
Zone model - Physical location bound to one production stage
"""
from typing import Optional, Tuple

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base
from lotetrace.core.stages import zone_stages

_STAGES_SQL = ", ".join(f"'{stage}'" for stage in zone_stages())


class Zone(Base):
    __tablename__ = "zones"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    stage = Column(String(20), nullable=False, index=True)
    fixed_info = Column(JSON, nullable=False, default=dict)
    # {"temperature": {"min": 2, "max": 6}, "humidity": {...}}
    targets = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="zones")
    stays = relationship("Stay", back_populates="zone")
    sensors = relationship("Sensor", back_populates="zone")

    __table_args__ = (
        CheckConstraint(f"stage IN ({_STAGES_SQL})", name="ck_zones_stage"),
    )

    def target_for(self, metric: str) -> Optional[Tuple[float, float]]:
        """Target range (min, max) the zone defines for a metric, if any."""
        target = (self.targets or {}).get(metric)
        if not isinstance(target, dict):
            return None
        low, high = target.get("min"), target.get("max")
        if low is None or high is None:
            return None
        return float(low), float(high)

    def __repr__(self):
        return f"<Zone(id={self.id}, name={self.name}, stage={self.stage})>"
