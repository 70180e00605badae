"""
Sensor models
"""
from .sensor import Sensor
from .sensor_reading import SensorReading
from .alert import Alert, AlertType

__all__ = [
    "Sensor",
    "SensorReading",
    "Alert",
    "AlertType",
]
