"""
Stay model - Residency interval of a lote in a zone
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base


class Stay(Base):
    __tablename__ = "stays"

    id = Column(Integer, primary_key=True, index=True)
    lote_id = Column(Integer, ForeignKey("lotes.id"), nullable=False, index=True)
    # NULL zone = unassigned
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=True, index=True)

    entry_time = Column(DateTime, nullable=False)
    exit_time = Column(DateTime, nullable=True)

    created_by_type = Column(String(10), nullable=False, server_default="system")
    created_by_id = Column(String(64), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    lote = relationship("Lote", back_populates="stays")
    zone = relationship("Zone", back_populates="stays")

    __table_args__ = (
        Index("ix_stays_lote_entry", "lote_id", "entry_time"),
        # Al massimo una permanenza aperta per lotto
        Index(
            "uq_stays_one_open_per_lote",
            "lote_id",
            unique=True,
            postgresql_where=text("exit_time IS NULL"),
            sqlite_where=text("exit_time IS NULL"),
        ),
        CheckConstraint("created_by_type IN ('system', 'user')", name="ck_stays_created_by_type"),
    )

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    def __repr__(self):
        return f"<Stay(id={self.id}, lote_id={self.lote_id}, zone_id={self.zone_id}, entry={self.entry_time}, exit={self.exit_time})>"
