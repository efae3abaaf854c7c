# fan_monitor_server/adapters/api/schemas.py

from typing import Any, Optional

from fan_monitor_core.domain.models import DeviceState
from pydantic import BaseModel, Field

# Command bodies take any JSON value so that bad input reaches the command
# gateway and is reported as a 400 with the dashboard's message format.


class ModeIn(BaseModel):
    mode: Any = Field(None, description="auto | manual")


class ThresholdIn(BaseModel):
    threshold: Any = Field(None, description="Temperature setpoint, number or numeric string")


class ControlIn(BaseModel):
    control: Any = Field(None, description="on | off")


class FanDataOut(BaseModel):
    mode: str
    control: str
    threshold: float
    temperature: float
    humidity: float

    @classmethod
    def from_domain(cls, state: DeviceState) -> "FanDataOut":
        return cls(**state.to_dict())


class ModeOut(BaseModel):
    message: str
    mode: str


class ThresholdOut(BaseModel):
    message: str
    threshold: float


class ControlOut(BaseModel):
    message: str
    control: str


class MessageOut(BaseModel):
    message: str


class HistoryItemOut(BaseModel):
    id: Optional[int] = None
    device_id: str
    status: str
    mode: str
    threshold: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    timestamp: Optional[str] = None
