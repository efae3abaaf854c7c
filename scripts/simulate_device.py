"""
Fake ESP32 fan controller.

• Listens on fan/mode, fan/control and fan/threshold for dashboard commands
• Publishes {"mode", "state", "threshold", "temperature", "humidity"} to fan/update
  every interval and after every accepted command
• In auto mode switches the fan on when the temperature is above the threshold
"""

import argparse
import json
import logging
import os
import random
import time

import paho.mqtt.client as mqtt

from fan_monitor_core.config.environments import get_settings
from fan_monitor_core.domain.topics import TOPIC_CONTROL, TOPIC_MODE, TOPIC_THRESHOLD, TOPIC_UPDATE

log = logging.getLogger("simulator")

# -------------------------------------------------------------------- #
# device state
# -------------------------------------------------------------------- #
device = {"mode": "auto", "state": "off", "threshold": 25.0, "temperature": 26.0, "humidity": 60.0}


def read_sensor() -> None:
    device["temperature"] = round(device["temperature"] + random.uniform(-0.5, 0.5), 1)
    device["humidity"] = round(min(100.0, max(0.0, device["humidity"] + random.uniform(-1, 1))), 1)
    if device["mode"] == "auto":
        device["state"] = "on" if device["temperature"] > device["threshold"] else "off"


def report(client: mqtt.Client) -> None:
    client.publish(TOPIC_UPDATE, json.dumps(device), qos=1)
    log.debug("reported %s", device)


# -------------------------------------------------------------------- #
# commands
# -------------------------------------------------------------------- #
def on_command(client: mqtt.Client, _userdata, msg: mqtt.MQTTMessage) -> None:
    value = msg.payload.decode(errors="replace").strip()
    try:
        if msg.topic == TOPIC_MODE and value in ("auto", "manual"):
            device["mode"] = value
        elif msg.topic == TOPIC_CONTROL and value in ("on", "off"):
            device["state"] = value
        elif msg.topic == TOPIC_THRESHOLD:
            device["threshold"] = float(value)
        else:
            log.warning("ignored command %s=%r", msg.topic, value)
            return
    except ValueError as exc:
        log.error("bad command %s=%r: %s", msg.topic, value, exc)
        return
    log.info("command %s=%s", msg.topic, value)
    report(client)


def on_connect(client: mqtt.Client, _userdata, _flags, reason_code, _properties=None) -> None:
    if reason_code.is_failure:
        log.error("connect failed: %s", reason_code)
        return
    for topic in (TOPIC_MODE, TOPIC_CONTROL, TOPIC_THRESHOLD):
        client.subscribe(topic, qos=1)


# -------------------------------------------------------------------- #
# main
# -------------------------------------------------------------------- #
def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate the fan controller over MQTT")
    parser.add_argument(
        "--environment",
        choices=["production", "development", "testing"],
        default="development",
    )
    parser.add_argument("--interval", type=float, default=5.0, help="seconds between reports")
    args = parser.parse_args()

    os.environ["FAN_MONITOR_ENV"] = args.environment
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=f"{settings.DEVICE_ID}-sim")
    if settings.MQTT_USERNAME and settings.MQTT_PASSWORD:
        client.username_pw_set(settings.MQTT_USERNAME, settings.MQTT_PASSWORD)
    client.on_connect = on_connect
    client.on_message = on_command
    client.connect(settings.MQTT_BROKER, settings.MQTT_PORT)
    client.loop_start()

    try:
        while True:
            read_sensor()
            report(client)
            time.sleep(args.interval)
    except KeyboardInterrupt:
        log.info("stopping simulator")
    finally:
        client.loop_stop()
        client.disconnect()


if __name__ == "__main__":
    main()
