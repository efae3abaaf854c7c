import logging
from typing import Optional

import paho.mqtt.client as mqtt
from paho.mqtt.subscribeoptions import SubscribeOptions
from fan_monitor_core.config.environments import Settings
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.ports import CommandPublisher
from fan_monitor_core.domain.topics import INBOUND_TOPICS

log = logging.getLogger(__name__)


class MqttBridge(CommandPublisher):
    """
    One paho client shared by both directions, speaking MQTT 5.

    Inbound messages on the fan topics are applied to the aggregate on the
    paho network thread. ``publish`` is called from API worker threads and
    waits for the broker's PUBACK before reporting success.
    """

    def __init__(
        self,
        state: DeviceStateAggregate,
        *,
        host: str,
        port: int = 1883,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
        ack_timeout: float = 5.0,
    ):
        self.state = state
        self.host = host
        self.port = port
        self.client_id = client_id
        self.keepalive = keepalive
        self.ack_timeout = ack_timeout

        self._connected = False
        self._disconnected_rc = None

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv5,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message
        self._client.reconnect_delay_set(min_delay=1, max_delay=30)

        if username and password:
            self._client.username_pw_set(username, password)

        log.info(
            "Initializing MQTT bridge: host=%s, port=%s, client_id=%s",
            host,
            port,
            client_id,
        )

    @classmethod
    def from_settings(cls, state: DeviceStateAggregate, settings: Settings) -> "MqttBridge":
        return cls(
            state,
            host=settings.MQTT_BROKER,
            port=settings.MQTT_PORT,
            client_id=settings.MQTT_CLIENT_ID,
            username=settings.MQTT_USERNAME,
            password=settings.MQTT_PASSWORD,
            keepalive=settings.MQTT_KEEPALIVE,
            ack_timeout=settings.MQTT_ACK_TIMEOUT,
        )

    def start(self) -> None:
        """Connect in the background; paho keeps reconnecting until ``stop``."""
        log.info("Connecting to MQTT broker at %s:%s", self.host, self.port)
        self._client.connect_async(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()

    def stop(self) -> None:
        log.info("Closing MQTT connection")
        self._client.disconnect()
        self._client.loop_stop()
        self._connected = False

    def _on_connect(self, client, _userdata, _flags, reason_code, _properties=None) -> None:
        if reason_code.is_failure:
            self._connected = False
            log.error("MQTT connect failed, rc=%s", reason_code)
            return
        self._connected = True
        log.info("Connected to broker %s:%s", self.host, self.port)
        # subscriptions do not outlive the session, renew them on every connect.
        # noLocal keeps our own commands from coming back as device updates.
        for topic in INBOUND_TOPICS:
            client.subscribe(topic, options=SubscribeOptions(qos=1, noLocal=True))
            log.info("Subscribed to %s", topic)

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, _properties=None) -> None:
        self._connected = False
        self._disconnected_rc = reason_code
        log.warning("Disconnected from MQTT broker, reason: %s", reason_code)

    def _on_message(self, _client, _userdata, msg) -> None:
        try:
            self.state.apply_transport_update(msg.topic, msg.payload)
        except Exception as exc:
            log.exception("Failed to process message on topic %s: %s", msg.topic, exc)

    def publish(self, topic: str, payload: str) -> bool:
        """Publish *payload* at qos 1 and wait for the acknowledgment."""
        if not self._connected:
            log.warning("Not connected to MQTT broker, cannot publish to %s", topic)
            return False

        info = self._client.publish(topic, payload, qos=1, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            log.error("Failed to publish to %s, error code: %s", topic, info.rc)
            return False

        log.debug("Message published to %s with ID: %s", topic, info.mid)
        info.wait_for_publish(timeout=self.ack_timeout)
        if not info.is_published():
            log.warning("Publish acknowledgment timeout for message ID: %s", info.mid)
            return False
        return True

    def is_connected(self) -> bool:
        return self._connected

    def get_disconnect_reason(self):
        return self._disconnected_rc
