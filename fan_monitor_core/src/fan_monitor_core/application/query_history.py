from typing import List, Optional

from fan_monitor_core.domain.errors import PersistenceError
from fan_monitor_core.domain.models import HistoryRecord
from fan_monitor_core.domain.ports import UnitOfWork


def get_status_history(uow: UnitOfWork, limit: Optional[int] = None) -> List[HistoryRecord]:
    """Stored history rows, most recent first."""
    try:
        with uow:
            return uow.history_repo().list_recent(limit=limit)
    except Exception as exc:
        raise PersistenceError(f"could not read history: {exc}") from exc
