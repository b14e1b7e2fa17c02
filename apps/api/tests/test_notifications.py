"""Change events and the dashboard WebSocket channel."""
import logging
import time
import uuid

from app.services.notifications import (
    WORKSHEET_UPDATED,
    ConnectionHub,
    RecordingPublisher,
    emit_worksheet_update,
    hub,
)

from conftest import WORK_DATE


class ExplodingPublisher:
    def publish(self, event, payload):
        raise RuntimeError("broker down")


def test_payload_shape():
    publisher = RecordingPublisher()
    group_id = uuid.uuid4()

    emit_worksheet_update(publisher, group_id=group_id, work_date=WORK_DATE, affected_workers=3)
    emit_worksheet_update(publisher, group_id=group_id, work_date=WORK_DATE, affected_workers=1, work_hour=4)

    assert publisher.events == [
        (WORKSHEET_UPDATED, {"group_id": str(group_id), "date": "2026-03-02", "affected_workers": 3}),
        (WORKSHEET_UPDATED, {"group_id": str(group_id), "date": "2026-03-02", "affected_workers": 1, "work_hour": 4}),
    ]


def test_no_publisher_is_a_no_op():
    emit_worksheet_update(None, group_id=uuid.uuid4(), work_date=WORK_DATE, affected_workers=1)


def test_publish_failure_is_logged_not_raised(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.notifications"):
        emit_worksheet_update(ExplodingPublisher(), group_id=uuid.uuid4(), work_date=WORK_DATE, affected_workers=1)
    assert any("Failed to publish" in r.getMessage() for r in caplog.records)


def test_hub_without_clients_drops_events():
    fresh = ConnectionHub()
    fresh.publish(WORKSHEET_UPDATED, {"group_id": "g", "date": "2026-03-02", "affected_workers": 1})
    assert fresh.connection_count == 0


def test_websocket_client_receives_published_events(client):
    with client.websocket_connect("/ws/worksheets") as websocket:
        deadline = time.monotonic() + 2
        while hub.connection_count == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert hub.connection_count == 1

        hub.publish(WORKSHEET_UPDATED, {"group_id": "g1", "date": "2026-03-02", "affected_workers": 2})
        message = websocket.receive_json()

    assert message["event"] == WORKSHEET_UPDATED
    assert message["group_id"] == "g1"
    assert message["affected_workers"] == 2
    assert "timestamp" in message
