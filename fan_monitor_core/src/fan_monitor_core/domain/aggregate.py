import logging
import threading
from typing import Any, Callable, List, Optional, Union

from fan_monitor_core.domain.errors import ParseError
from fan_monitor_core.domain.models import DeviceState, StatusSnapshot
from fan_monitor_core.domain.ports import ChangeListener
from fan_monitor_core.domain.topics import (
    TOPIC_CONTROL,
    TOPIC_MODE,
    TOPIC_THRESHOLD,
    TOPIC_UPDATE,
    FanUpdate,
    coerce_control,
    coerce_mode,
    coerce_number,
    parse_control,
    parse_mode,
    parse_threshold,
    parse_update,
)

logger = logging.getLogger(__name__)

# fields a command is allowed to mirror into the state
COMMAND_FIELDS = ("mode", "control", "threshold")

_COERCERS = {"mode": coerce_mode, "control": coerce_control, "threshold": coerce_number}


class DeviceStateAggregate:
    """
    Single owner of the live fan state.

    Two writers reach it concurrently: the MQTT network thread, through
    ``apply_transport_update``, and API worker threads, through
    ``apply_command_echo``. Every read-compare-write runs under one lock so
    neither can lose the other's update.

    When an inbound update changes ``mode``, ``control`` or ``threshold``
    the registered listeners receive a snapshot of the whole state. They are
    called while the lock is held, so they must not block.
    """

    def __init__(self, initial: Optional[DeviceState] = None):
        self._state = initial or DeviceState()
        self._lock = threading.Lock()
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register *listener* for change notifications. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> DeviceState:
        with self._lock:
            return DeviceState(**vars(self._state))

    def apply_transport_update(self, topic: str, raw_payload: Union[bytes, str]) -> bool:
        """
        Apply a message received on *topic*.

        Malformed payloads and unknown topics are logged and dropped, the
        state is left as it was.

        Returns:
            bool: True if a tracked field changed and listeners were notified.
        """
        try:
            update = self._parse(topic, raw_payload)
        except ParseError as exc:
            logger.error("Discarding message on %s: %s", topic, exc)
            return False
        if update is None:
            logger.warning("Unhandled topic: %s", topic)
            return False

        with self._lock:
            dirty = self._merge(update)
            if dirty:
                logger.info("Fan status updated from %s: %s", topic, self._state.to_dict())
                self._notify(StatusSnapshot.of(self._state))
        return dirty

    def apply_command_echo(self, field: str, value: Any) -> bool:
        """
        Mirror a value the gateway has just published.

        The mirror does not notify listeners. History is only written when an
        inbound update detects a change.

        Raises:
            ValueError: if *field* is not a command field or *value* is not a
                valid mode, control or finite threshold.
        """
        if field not in COMMAND_FIELDS:
            raise ValueError(f"cannot mirror field {field!r}")
        value = _COERCERS[field](value)
        with self._lock:
            if getattr(self._state, field) == value:
                return False
            setattr(self._state, field, value)
        logger.info("Fan %s set locally: %s", field, value)
        return True

    @staticmethod
    def _parse(topic: str, raw_payload: Union[bytes, str]) -> Optional[FanUpdate]:
        if topic == TOPIC_MODE:
            return FanUpdate(mode=parse_mode(raw_payload))
        if topic == TOPIC_CONTROL:
            return FanUpdate(control=parse_control(raw_payload))
        if topic == TOPIC_THRESHOLD:
            return FanUpdate(threshold=parse_threshold(raw_payload))
        if topic == TOPIC_UPDATE:
            return parse_update(raw_payload)
        return None

    def _merge(self, update: FanUpdate) -> bool:
        state = self._state
        dirty = False

        for field in COMMAND_FIELDS:
            value = getattr(update, field)
            if value is not None and value != getattr(state, field):
                setattr(state, field, value)
                dirty = True

        # telemetry is applied but never marks the update dirty
        if update.temperature is not None:
            state.temperature = update.temperature
        if update.humidity is not None:
            state.humidity = update.humidity

        return dirty

    def _notify(self, snapshot: StatusSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Change listener %r failed", listener)
