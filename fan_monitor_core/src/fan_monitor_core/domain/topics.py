"""
MQTT topics exchanged with the fan controller and the payload shapes they carry.

Scalar topics (``fan/mode``, ``fan/control``, ``fan/threshold``) carry the bare
value as text. ``fan/update`` carries a JSON object where every key is optional:

    {"mode": "auto", "state": "on", "threshold": 27.5,
     "temperature": 28.1, "humidity": 61.0}

Note that the controller calls the actuator state ``state`` while the rest of
the system calls it ``control``.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from fan_monitor_core.domain.errors import ParseError
from fan_monitor_core.domain.models import Control, Mode

TOPIC_MODE = "fan/mode"
TOPIC_CONTROL = "fan/control"
TOPIC_THRESHOLD = "fan/threshold"
TOPIC_UPDATE = "fan/update"

INBOUND_TOPICS = (TOPIC_MODE, TOPIC_CONTROL, TOPIC_THRESHOLD, TOPIC_UPDATE)


@dataclass(frozen=True)
class FanUpdate:
    mode: Optional[Mode] = None
    control: Optional[Control] = None
    threshold: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None


def coerce_mode(value: Any) -> Mode:
    if not isinstance(value, str):
        raise ValueError(f"mode must be a string, got {value!r}")
    return Mode(value)


def coerce_control(value: Any) -> Control:
    if not isinstance(value, str):
        raise ValueError(f"control must be a string, got {value!r}")
    return Control(value)


def coerce_number(value: Any) -> float:
    """Return *value* as a finite float, accepting numbers and numeric strings."""
    # bool is an int subclass
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if not isinstance(value, (int, float, str)):
        raise ValueError(f"not a number: {value!r}")
    try:
        number = float(value)
    except OverflowError as exc:
        raise ValueError(f"number out of range: {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


def format_threshold(value: float) -> str:
    """Shortest text form of a threshold: 30.0 -> "30", 30.5 -> "30.5"."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def decode_payload(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"payload is not valid UTF-8: {exc}") from exc


def parse_mode(raw: Union[bytes, str]) -> Mode:
    text = decode_payload(raw)
    try:
        return coerce_mode(text.strip())
    except ValueError as exc:
        raise ParseError(f"invalid mode {text!r}") from exc


def parse_control(raw: Union[bytes, str]) -> Control:
    text = decode_payload(raw)
    try:
        return coerce_control(text.strip())
    except ValueError as exc:
        raise ParseError(f"invalid control {text!r}") from exc


def parse_threshold(raw: Union[bytes, str]) -> float:
    text = decode_payload(raw)
    try:
        return coerce_number(text)
    except ValueError as exc:
        raise ParseError(f"invalid threshold {text!r}") from exc


def parse_update(raw: Union[bytes, str]) -> FanUpdate:
    """Parse a ``fan/update`` document. JSON ``null`` counts as an absent key."""
    text = decode_payload(raw)
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"invalid JSON in {TOPIC_UPDATE}: {exc}") from exc
    if not isinstance(doc, dict):
        raise ParseError(f"{TOPIC_UPDATE} payload must be an object, got {type(doc).__name__}")

    try:
        return FanUpdate(
            mode=_optional(doc.get("mode"), coerce_mode),
            control=_optional(doc.get("state"), coerce_control),
            threshold=_optional(doc.get("threshold"), coerce_number),
            temperature=_optional(doc.get("temperature"), coerce_number),
            humidity=_optional(doc.get("humidity"), coerce_number),
        )
    except ValueError as exc:
        raise ParseError(f"invalid field in {TOPIC_UPDATE}: {exc}") from exc


def _optional(value, coerce):
    return None if value is None else coerce(value)
