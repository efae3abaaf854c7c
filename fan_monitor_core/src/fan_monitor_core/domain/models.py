from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Mode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class Control(str, Enum):
    ON = "on"
    OFF = "off"


DEFAULT_MODE = Mode.AUTO
DEFAULT_CONTROL = Control.OFF
DEFAULT_THRESHOLD = 25.0


@dataclass
class DeviceState:
    mode: Mode = DEFAULT_MODE
    control: Control = DEFAULT_CONTROL
    threshold: float = DEFAULT_THRESHOLD
    temperature: float = 0.0
    humidity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["mode"] = self.mode.value
        d["control"] = self.control.value
        return d


@dataclass(frozen=True)
class StatusSnapshot:
    """Copy of the device state taken at the moment a change was detected."""

    mode: Mode
    control: Control
    threshold: float
    temperature: float
    humidity: float

    @classmethod
    def of(cls, state: DeviceState) -> "StatusSnapshot":
        return cls(
            mode=state.mode,
            control=state.control,
            threshold=state.threshold,
            temperature=state.temperature,
            humidity=state.humidity,
        )


@dataclass(frozen=True)
class HistoryRecord:
    device_id: str
    status: str
    mode: str
    threshold: Optional[float]
    temperature: Optional[float]
    humidity: Optional[float]
    timestamp: Optional[datetime] = None  # assigned by the store
    id: Optional[int] = None
