"""
Sensor model - Environmental probe attached to a zone
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from lotetrace.core.database import Base


class Sensor(Base):
    __tablename__ = "sensors"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    device_id = Column(String(50), unique=True, nullable=False)
    sensor_type = Column(String(50), nullable=False)  # temperature, humidity, ...
    unit = Column(String(20), nullable=True)

    # Soglie di validazione (alert quando superate)
    validation_min = Column(Numeric(10, 2), nullable=True)
    validation_max = Column(Numeric(10, 2), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    is_public = Column(Boolean, nullable=False, default=True, server_default="true")

    # Ingestion via broker MQTT
    mqtt_enabled = Column(Boolean, nullable=False, default=False, server_default="false")
    mqtt_host = Column(String(255), nullable=True)
    mqtt_port = Column(Integer, nullable=True, default=8883)
    mqtt_username = Column(String(255), nullable=True)
    mqtt_password = Column(String(255), nullable=True)
    mqtt_topic = Column(String(255), nullable=True, index=True)
    field_path = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="sensors")
    zone = relationship("Zone", back_populates="sensors")
    readings = relationship("SensorReading", back_populates="sensor")
    alerts = relationship("Alert", back_populates="sensor")

    def __repr__(self):
        return f"<Sensor(id={self.id}, device_id={self.device_id}, type={self.sensor_type})>"
