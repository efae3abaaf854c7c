from fan_monitor_core.domain.errors import PersistenceError
from fan_monitor_core.domain.models import StatusSnapshot
from fan_monitor_core.domain.ports import UnitOfWork


def record_status_change(snapshot: StatusSnapshot, device_id: str, uow: UnitOfWork) -> None:
    try:
        with uow:
            uow.history_repo().insert(snapshot, device_id)
    except PersistenceError:
        raise
    except Exception as exc:
        raise PersistenceError(f"could not store history for {device_id}: {exc}") from exc
