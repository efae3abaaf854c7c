from datetime import datetime, timezone

import factory
from fan_monitor_core.domain.models import Control, HistoryRecord, Mode, StatusSnapshot


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class StatusSnapshotFactory(factory.Factory):
    class Meta:
        model = StatusSnapshot

    mode = Mode.AUTO
    control = Control.OFF
    threshold = 25.0
    temperature = 27.5
    humidity = 60.0


class HistoryRecordFactory(factory.Factory):
    class Meta:
        model = HistoryRecord

    id = factory.Sequence(lambda n: n + 1)
    device_id = "esp32"
    status = "off"
    mode = "auto"
    threshold = 25.0
    temperature = 27.5
    humidity = 60.0
    timestamp = factory.LazyFunction(utc_now)
