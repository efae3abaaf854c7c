import logging
from typing import Any

from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.errors import PublishError, ValidationError
from fan_monitor_core.domain.models import Control, Mode
from fan_monitor_core.domain.ports import CommandPublisher
from fan_monitor_core.domain.topics import (
    TOPIC_CONTROL,
    TOPIC_MODE,
    TOPIC_THRESHOLD,
    coerce_control,
    coerce_mode,
    coerce_number,
    format_threshold,
)

logger = logging.getLogger(__name__)


class CommandGateway:
    """
    Turns dashboard commands into MQTT publishes.

    Flow per command:
    1. Validate the input, raising ValidationError before anything is sent
    2. Publish the canonical value on the command topic
    3. On a confirmed publish, mirror the value into the aggregate
       without waiting for the controller to echo it back
    """

    def __init__(self, state: DeviceStateAggregate, publisher: CommandPublisher):
        self.state = state
        self.publisher = publisher

    def set_mode(self, mode: Any) -> Mode:
        try:
            value = coerce_mode(mode)
        except ValueError as exc:
            raise ValidationError("Invalid mode") from exc
        self._publish(TOPIC_MODE, value.value)
        self.state.apply_command_echo("mode", value)
        return value

    def set_threshold(self, threshold: Any) -> float:
        try:
            value = coerce_number(threshold)
        except ValueError as exc:
            raise ValidationError("Invalid threshold value") from exc
        self._publish(TOPIC_THRESHOLD, format_threshold(value))
        self.state.apply_command_echo("threshold", value)
        return value

    def set_control(self, control: Any) -> Control:
        try:
            value = coerce_control(control)
        except ValueError as exc:
            raise ValidationError("Invalid control state") from exc
        self._publish(TOPIC_CONTROL, value.value)
        self.state.apply_command_echo("control", value)
        return value

    def _publish(self, topic: str, payload: str) -> None:
        try:
            ok = self.publisher.publish(topic, payload)
        except Exception as exc:
            logger.error("Failed to publish %r to %s: %s", payload, topic, exc)
            raise PublishError(f"publish to {topic} failed") from exc
        if not ok:
            logger.error("Failed to publish %r to %s", payload, topic)
            raise PublishError(f"publish to {topic} was not confirmed")
        logger.debug("Published %r to %s", payload, topic)
