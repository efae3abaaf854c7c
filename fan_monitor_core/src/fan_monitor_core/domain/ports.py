from typing import List, Optional, Protocol

from fan_monitor_core.domain.models import HistoryRecord, StatusSnapshot


class CommandPublisher(Protocol):
    def publish(self, topic: str, payload: str) -> bool: ...


class ChangeListener(Protocol):
    def __call__(self, snapshot: StatusSnapshot) -> None: ...


class HistoryRepository(Protocol):
    def insert(self, snapshot: StatusSnapshot, device_id: str) -> None: ...

    def list_recent(self, limit: Optional[int] = None) -> List[HistoryRecord]: ...


class UnitOfWork(Protocol):
    def history_repo(self) -> HistoryRepository: ...

    def __enter__(self) -> "UnitOfWork": ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...
