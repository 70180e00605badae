"""
Lote model - Batch of animals (or pieces, after a split) tracked through the stages
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base


class LoteStatus(str, enum.Enum):
    ACTIVE = "active"
    FINISHED = "finished"


class Lote(Base):
    __tablename__ = "lotes"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    identification = Column(String(100), nullable=False)
    initial_animals = Column(Integer, nullable=False)
    final_animals = Column(Integer, nullable=True)
    food_regime = Column(String(100), nullable=True)
    custom_data = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=LoteStatus.ACTIVE.value, server_default=LoteStatus.ACTIVE.value)

    # Lineage: a sub-lote points to exactly one parent
    parent_lote_id = Column(Integer, ForeignKey("lotes.id"), nullable=True, index=True)
    piece_type = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="lotes")
    parent = relationship("Lote", remote_side=[id], back_populates="sub_lotes")
    sub_lotes = relationship("Lote", back_populates="parent", order_by="Lote.id")
    stays = relationship("Stay", back_populates="lote", order_by="Stay.entry_time")
    snapshots = relationship("QrSnapshot", back_populates="lote")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'finished')", name="ck_lotes_status"),
        CheckConstraint("initial_animals >= 0", name="ck_lotes_initial_animals"),
    )

    @property
    def is_finished(self) -> bool:
        return self.status == LoteStatus.FINISHED.value

    def __repr__(self):
        return f"<Lote(id={self.id}, identification={self.identification}, status={self.status})>"
