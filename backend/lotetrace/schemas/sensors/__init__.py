"""
Sensor schemas
"""
from .sensor import SensorBase, SensorCreate, SensorUpdate, SensorMqttConfig, SensorResponse
from .reading import SensorReadingResponse, IngestResponse, SimulationRequest, SimulationResponse
from .alert import AlertResponse, UnreadCountResponse

__all__ = [
    "SensorBase",
    "SensorCreate",
    "SensorUpdate",
    "SensorMqttConfig",
    "SensorResponse",
    "SensorReadingResponse",
    "IngestResponse",
    "SimulationRequest",
    "SimulationResponse",
    "AlertResponse",
    "UnreadCountResponse",
]
