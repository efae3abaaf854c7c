from typing import List, Optional

from fan_monitor_core.domain.models import HistoryRecord, StatusSnapshot
from fan_monitor_core.domain.ports import HistoryRepository
from sqlalchemy import select
from sqlalchemy.orm import Session

from fan_monitor_server.adapters.db.sqlalchemy_models import DeviceStatusHistoryORM


class SqlAlchemyHistoryRepository(HistoryRepository):
    """Append-only access to ``device_status_history``. Rows are never updated or deleted."""

    def __init__(self, session: Session):
        self.session = session

    # READ side
    def list_recent(self, limit: Optional[int] = None) -> List[HistoryRecord]:
        stmt = select(DeviceStatusHistoryORM).order_by(
            DeviceStatusHistoryORM.timestamp.desc(),
            DeviceStatusHistoryORM.id.desc(),
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [self._to_domain(r) for r in self.session.scalars(stmt).all()]

    # WRITE side
    def insert(self, snapshot: StatusSnapshot, device_id: str) -> None:
        row = DeviceStatusHistoryORM()  # timestamp is filled in by the database
        row.device_id = device_id
        row.status = snapshot.control.value
        row.mode = snapshot.mode.value
        row.threshold = snapshot.threshold
        row.temperature = snapshot.temperature
        row.humidity = snapshot.humidity
        self.session.add(row)

    # helper
    @staticmethod
    def _to_domain(row: DeviceStatusHistoryORM) -> HistoryRecord:
        return HistoryRecord(
            id=row.id,
            device_id=row.device_id,
            status=row.status,
            mode=row.mode,
            threshold=row.threshold,
            temperature=row.temperature,
            humidity=row.humidity,
            timestamp=row.timestamp,
        )
