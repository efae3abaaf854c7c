# fan_monitor_server/adapters/api/routes.py

import logging

from fan_monitor_core.application.commands import CommandGateway
from fan_monitor_core.application.format_history import DEFAULT_DISPLAY_TIMEZONE, format_history
from fan_monitor_core.application.query_history import get_status_history
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.errors import PersistenceError, PublishError, ValidationError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from fan_monitor_server.adapters.api.schemas import (
    ControlIn,
    ControlOut,
    FanDataOut,
    HistoryItemOut,
    MessageOut,
    ModeIn,
    ModeOut,
    ThresholdIn,
    ThresholdOut,
)
from fan_monitor_server.adapters.db.uow import SqlAlchemyUoW

log = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {400: {"model": MessageOut}, 500: {"model": MessageOut}}


def get_device_state(request: Request) -> DeviceStateAggregate:
    return request.app.state.device_state


def get_gateway(request: Request) -> CommandGateway:
    return request.app.state.gateway


def get_display_timezone(request: Request) -> str:
    return getattr(request.app.state, "display_timezone", DEFAULT_DISPLAY_TIMEZONE)


def get_uow(request: Request):
    uow_factory = getattr(request.app.state, "uow_factory", SqlAlchemyUoW)
    with uow_factory() as uow:
        yield uow


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@router.get("/ping")
def ping():
    return {"status": "ok"}


@router.get("/api/fanData", response_model=FanDataOut)
def fan_data(state: DeviceStateAggregate = Depends(get_device_state)):
    return FanDataOut.from_domain(state.snapshot())


@router.post("/api/fanData", response_model=ModeOut, responses=_ERROR_RESPONSES)
def change_mode(req: ModeIn, gateway: CommandGateway = Depends(get_gateway)):
    try:
        mode = gateway.set_mode(req.mode)
    except ValidationError:
        return _message(400, "Invalid mode")
    except PublishError:
        return _message(500, "Failed to update mode")
    return ModeOut(message="Mode updated successfully", mode=mode.value)


@router.post("/api/changeThreshold", response_model=ThresholdOut, responses=_ERROR_RESPONSES)
def change_threshold(req: ThresholdIn, gateway: CommandGateway = Depends(get_gateway)):
    try:
        threshold = gateway.set_threshold(req.threshold)
    except ValidationError:
        return _message(400, "Invalid threshold value")
    except PublishError:
        return _message(500, "Failed to update threshold")
    return ThresholdOut(message="Threshold updated successfully", threshold=threshold)


@router.post("/api/toggleFan", response_model=ControlOut, responses=_ERROR_RESPONSES)
def toggle_fan(req: ControlIn, gateway: CommandGateway = Depends(get_gateway)):
    try:
        control = gateway.set_control(req.control)
    except ValidationError:
        return _message(400, "Invalid control state")
    except PublishError:
        return _message(500, "Failed to update fan control")
    return ControlOut(message="Fan control updated successfully", control=control.value)


@router.get("/api/statusHistory", response_model=list[HistoryItemOut], responses=_ERROR_RESPONSES)
def status_history(
    uow: SqlAlchemyUoW = Depends(get_uow),
    display_timezone: str = Depends(get_display_timezone),
):
    try:
        rows = get_status_history(uow)
    except PersistenceError as exc:
        log.error("Error fetching history: %s", exc)
        return _message(500, "Error fetching history")
    return format_history(rows, display_timezone=display_timezone)
