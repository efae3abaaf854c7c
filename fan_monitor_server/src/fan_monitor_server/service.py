import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Optional

import uvicorn
from fan_monitor_core.application.commands import CommandGateway
from fan_monitor_core.application.history_writer import HistoryWriter
from fan_monitor_core.config.environments import Settings, get_settings
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.ports import CommandPublisher, UnitOfWork
from fastapi import FastAPI

from fan_monitor_server.adapters.api.main import create_app
from fan_monitor_server.adapters.db.session import create_session_factory
from fan_monitor_server.adapters.db.uow import SqlAlchemyUoW
from fan_monitor_server.adapters.mqtt.bridge import MqttBridge

log = logging.getLogger(__name__)


@dataclass
class Runtime:
    state: DeviceStateAggregate
    writer: HistoryWriter
    publisher: CommandPublisher
    gateway: CommandGateway
    app: FastAPI

    def stop(self) -> None:
        stop_publisher = getattr(self.publisher, "stop", None)
        if stop_publisher is not None:
            stop_publisher()
        self.writer.stop()
        self.writer.join(timeout=5)


def sql_uow_for(database_url: str) -> SqlAlchemyUoW:
    return SqlAlchemyUoW(session_factory=create_session_factory(database_url))


def bootstrap(
    settings: Optional[Settings] = None,
    publisher_factory: Optional[Callable[[DeviceStateAggregate], CommandPublisher]] = None,
    uow_factory: Optional[Callable[[], UnitOfWork]] = None,
) -> Runtime:
    """Wire the aggregate, history writer, MQTT bridge and API together and start the threads."""
    settings = settings or get_settings()
    if uow_factory is None:
        uow_factory = partial(sql_uow_for, settings.DATABASE_URL)

    log.info(f"Starting fan monitor in {settings.ENVIRONMENT.value} environment")
    log.info(f"Device ID: {settings.DEVICE_ID}")
    log.info(f"MQTT Broker: {settings.MQTT_BROKER}:{settings.MQTT_PORT}")

    state = DeviceStateAggregate()

    writer = HistoryWriter(uow_factory, settings.DEVICE_ID)
    state.subscribe(writer.submit)
    writer.start()

    if publisher_factory is None:
        bridge = MqttBridge.from_settings(state, settings)
        bridge.start()
        publisher: CommandPublisher = bridge
    else:
        publisher = publisher_factory(state)

    gateway = CommandGateway(state, publisher)
    app = create_app(
        state,
        gateway,
        display_timezone=settings.DISPLAY_TIMEZONE,
        cors_origins=settings.CORS_ORIGINS,
        uow_factory=uow_factory,
    )
    return Runtime(state=state, writer=writer, publisher=publisher, gateway=gateway, app=app)


async def serve_on_ports(app: FastAPI, host: str, ports: Iterable[int], log_level: str) -> None:
    """Serve *app* on every port; when one server exits the others are told to exit too."""
    servers = [
        uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level=log_level))
        for port in ports
    ]
    tasks = [asyncio.create_task(server.serve()) for server in servers]
    _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for server in servers:
        server.should_exit = True
    if pending:
        await asyncio.gather(*pending)


def run(settings: Settings, host: Optional[str] = None) -> None:
    runtime = bootstrap(settings)
    host = host or settings.API_HOST
    log.info(f"Backend API on http://{host}:{settings.API_PORT}")
    log.info(f"History API on http://{host}:{settings.HISTORY_PORT}")
    try:
        asyncio.run(
            serve_on_ports(
                runtime.app,
                host,
                list(dict.fromkeys([settings.API_PORT, settings.HISTORY_PORT])),
                settings.LOG_LEVEL.lower(),
            )
        )
    finally:
        log.info("Shutting down fan monitor")
        runtime.stop()
