from typing import Callable, List, Optional

from fan_monitor_core.application.commands import CommandGateway
from fan_monitor_core.application.format_history import DEFAULT_DISPLAY_TIMEZONE
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.ports import UnitOfWork
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fan_monitor_server.adapters.api.routes import router
from fan_monitor_server.adapters.db.uow import SqlAlchemyUoW


async def _invalid_body(_request: Request, _exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


def create_app(
    state: DeviceStateAggregate,
    gateway: CommandGateway,
    *,
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE,
    cors_origins: Optional[List[str]] = None,
    uow_factory: Callable[[], UnitOfWork] = SqlAlchemyUoW,
) -> FastAPI:
    app = FastAPI(title="Fan Monitor")
    app.state.device_state = state
    app.state.gateway = gateway
    app.state.display_timezone = display_timezone
    app.state.uow_factory = uow_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _invalid_body)
    app.include_router(router)
    return app
