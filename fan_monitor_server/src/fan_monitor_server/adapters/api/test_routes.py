from fan_monitor_core.application.commands import CommandGateway
from fan_monitor_core.domain.aggregate import DeviceStateAggregate
from fastapi.testclient import TestClient

from fan_monitor_server.adapters.api.main import create_app
from fan_monitor_server.adapters.api.routes import get_uow
from fan_monitor_server.adapters.db.uow import SqlAlchemyUoW
from fan_monitor_server.utils.factories import HistoryRecordFactory


# ───────────── fakes ─────────────
class FakePublisher:
    def __init__(self):
        self.should_succeed = True
        self.published: list[tuple[str, str]] = []

    def publish(self, topic, payload):
        self.published.append((topic, payload))
        return self.should_succeed


class FakeHistoryRepo:
    def __init__(self):
        self.rows = []
        self.fail = False

    def list_recent(self, limit=None):
        if self.fail:
            raise RuntimeError("connection refused")
        return self.rows

    def insert(self, snapshot, device_id):
        raise AssertionError("routes never write history")


class StubUoW(SqlAlchemyUoW):
    def __init__(self, repo):
        super().__init__(session=None)
        self.repo = repo

    def history_repo(self):
        return self.repo

    def __exit__(self, *exc):
        pass


# ───────── FastAPI client ─────────
def make_client():
    state = DeviceStateAggregate()
    publisher = FakePublisher()
    repo = FakeHistoryRepo()
    app = create_app(state, CommandGateway(state, publisher), display_timezone="UTC")

    def override_uow():
        yield StubUoW(repo)

    app.dependency_overrides[get_uow] = override_uow
    return TestClient(app), state, publisher, repo


# ───────────── tests ─────────────
def test_ping():
    client, *_ = make_client()
    assert client.get("/ping").json() == {"status": "ok"}


def test_get_fan_data_returns_defaults():
    client, *_ = make_client()
    res = client.get("/api/fanData")
    assert res.status_code == 200
    assert res.json() == {
        "mode": "auto",
        "control": "off",
        "threshold": 25.0,
        "temperature": 0.0,
        "humidity": 0.0,
    }


def test_get_fan_data_reflects_transport_updates():
    client, state, *_ = make_client()
    state.apply_transport_update("fan/update", '{"temperature": 31.2, "humidity": 66}')
    assert client.get("/api/fanData").json()["temperature"] == 31.2


def test_invalid_mode_is_rejected():
    client, _, publisher, _ = make_client()
    res = client.post("/api/fanData", json={"mode": "xyz"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid mode"}
    assert publisher.published == []


def test_missing_mode_is_rejected():
    client, *_ = make_client()
    assert client.post("/api/fanData", json={}).status_code == 400


def test_change_mode_then_read_back():
    client, _, publisher, _ = make_client()
    res = client.post("/api/fanData", json={"mode": "manual"})
    assert res.status_code == 200
    assert res.json() == {"message": "Mode updated successfully", "mode": "manual"}
    assert publisher.published == [("fan/mode", "manual")]
    assert client.get("/api/fanData").json()["mode"] == "manual"


def test_non_numeric_threshold_is_rejected():
    client, _, publisher, _ = make_client()
    res = client.post("/api/changeThreshold", json={"threshold": "abc"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid threshold value"}
    assert client.post("/api/changeThreshold", json={}).status_code == 400
    assert publisher.published == []


def test_change_threshold_publishes_exact_text():
    client, _, publisher, _ = make_client()
    res = client.post("/api/changeThreshold", json={"threshold": 30})
    assert res.status_code == 200
    assert res.json()["threshold"] == 30
    assert res.json()["message"] == "Threshold updated successfully"
    assert publisher.published == [("fan/threshold", "30")]
    assert client.get("/api/fanData").json()["threshold"] == 30


def test_toggle_fan_rejects_invalid_control():
    client, *_ = make_client()
    res = client.post("/api/toggleFan", json={"control": "maybe"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid control state"}


def test_toggle_fan_publish_failure_leaves_state_unchanged():
    client, _, publisher, _ = make_client()
    publisher.should_succeed = False
    before = client.get("/api/fanData").json()

    res = client.post("/api/toggleFan", json={"control": "on"})

    assert res.status_code == 500
    assert res.json() == {"message": "Failed to update fan control"}
    assert client.get("/api/fanData").json() == before


def test_publish_failures_map_to_500_for_every_command():
    client, _, publisher, _ = make_client()
    publisher.should_succeed = False
    assert client.post("/api/fanData", json={"mode": "manual"}).status_code == 500
    assert client.post("/api/changeThreshold", json={"threshold": 31}).status_code == 500


def test_body_that_is_not_an_object_is_a_400():
    client, *_ = make_client()
    res = client.post("/api/toggleFan", content="on", headers={"content-type": "application/json"})
    assert res.status_code == 400


def test_status_history_is_formatted():
    client, _, _, repo = make_client()
    repo.rows = [
        HistoryRecordFactory(id=2, mode="manual", status="on", threshold=25.0),
        HistoryRecordFactory(id=1, mode="auto", status="off", threshold=27.0),
    ]
    res = client.get("/api/statusHistory")
    assert res.status_code == 200
    body = res.json()
    assert [r["id"] for r in body] == [2, 1]
    assert body[0]["threshold"] is None
    assert body[0]["mode"] == "Thủ công"
    assert body[0]["status"] == "Bật"
    assert body[1]["threshold"] == 27.0
    assert body[1]["mode"] == "Tự động"


def test_status_history_store_failure_is_a_500():
    client, _, _, repo = make_client()
    repo.fail = True
    res = client.get("/api/statusHistory")
    assert res.status_code == 500
    assert res.json() == {"message": "Error fetching history"}
