import pytest

from fan_monitor_core.application.history_writer import HistoryWriter
from fan_monitor_core.application.query_history import get_status_history
from fan_monitor_core.application.record_history import record_status_change
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fan_monitor_core.domain.errors import PersistenceError
from fan_monitor_core.domain.models import Control, HistoryRecord, Mode, StatusSnapshot

SNAPSHOT = StatusSnapshot(
    mode=Mode.AUTO, control=Control.ON, threshold=25.0, temperature=30.0, humidity=55.0
)


class FakeHistoryRepo:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.inserted: list[tuple[StatusSnapshot, str]] = []

    def insert(self, snapshot, device_id):
        if self.fail:
            raise RuntimeError("database is down")
        self.inserted.append((snapshot, device_id))

    def list_recent(self, limit=None):
        if self.fail:
            raise RuntimeError("database is down")
        rows = [
            HistoryRecord(
                id=i,
                device_id=device_id,
                status=s.control.value,
                mode=s.mode.value,
                threshold=s.threshold,
                temperature=s.temperature,
                humidity=s.humidity,
            )
            for i, (s, device_id) in enumerate(self.inserted, start=1)
        ]
        return list(reversed(rows))[:limit]


class StubUoW:
    def __init__(self, repo):
        self.repo = repo
        self.entered = 0

    def history_repo(self):
        return self.repo

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, *exc):
        pass


def test_record_status_change_inserts_snapshot():
    repo = FakeHistoryRepo()
    uow = StubUoW(repo)
    record_status_change(SNAPSHOT, "esp32", uow)
    assert repo.inserted == [(SNAPSHOT, "esp32")]
    assert uow.entered == 1


def test_record_status_change_wraps_store_failures():
    with pytest.raises(PersistenceError):
        record_status_change(SNAPSHOT, "esp32", StubUoW(FakeHistoryRepo(fail=True)))


def test_get_status_history_returns_most_recent_first():
    repo = FakeHistoryRepo()
    repo.insert(SNAPSHOT, "esp32")
    repo.insert(StatusSnapshot(Mode.MANUAL, Control.OFF, 25.0, 30.0, 55.0), "esp32")
    rows = get_status_history(StubUoW(repo))
    assert [r.id for r in rows] == [2, 1]
    assert rows[0].mode == "manual"


def test_get_status_history_wraps_store_failures():
    with pytest.raises(PersistenceError):
        get_status_history(StubUoW(FakeHistoryRepo(fail=True)))


def test_writer_persists_aggregate_changes():
    repo = FakeHistoryRepo()
    writer = HistoryWriter(lambda: StubUoW(repo), "esp32")
    state = DeviceStateAggregate()
    state.subscribe(writer.submit)
    writer.start()

    state.apply_transport_update("fan/control", "on")
    state.apply_transport_update("fan/update", '{"temperature": 40}')
    state.apply_transport_update("fan/mode", "manual")

    writer.stop()
    writer.join(timeout=5)

    assert not writer.is_alive()
    assert [s.control for s, _ in repo.inserted] == [Control.ON, Control.ON]
    assert repo.inserted[1][0].mode is Mode.MANUAL
    assert repo.inserted[1][0].temperature == 40.0


def test_writer_absorbs_store_failures(caplog):
    writer = HistoryWriter(lambda: StubUoW(FakeHistoryRepo(fail=True)), "esp32")
    assert writer.write_one(SNAPSHOT) is False
    assert "Error inserting device status into history" in caplog.text


def test_writer_survives_a_failing_uow_factory(caplog):
    repo = FakeHistoryRepo()
    calls = []

    def flaky_factory():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("cannot connect")
        return StubUoW(repo)

    writer = HistoryWriter(flaky_factory, "esp32")
    writer.start()
    writer.submit(SNAPSHOT)
    writer.submit(SNAPSHOT)
    writer.stop()
    writer.join(timeout=5)

    assert not writer.is_alive()
    assert repo.inserted == [(SNAPSHOT, "esp32")]
    assert "Error inserting device status into history" in caplog.text
    assert "cannot connect" in caplog.text


def test_submit_never_blocks_without_running_thread():
    writer = HistoryWriter(lambda: StubUoW(FakeHistoryRepo()), "esp32")
    for _ in range(100):
        writer.submit(SNAPSHOT)
    assert writer.pending() == 100
