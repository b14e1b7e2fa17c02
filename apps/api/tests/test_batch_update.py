"""Hourly batch entry: replace semantics, all-or-nothing, versions."""
import uuid

import pytest
from sqlalchemy.orm import sessionmaker

from app.core.errors import BadRequest, ConflictError, NotFoundError, PermissionDenied, ValidationError
from app.models.enums import RecordStatus
from app.models.worksheet import Worksheet
from app.schemas.worksheets import ProductEntry, WorkerHourOutput
from app.services.aggregation import efficiency, record_actual, record_planned_capacity
from app.services.batch_update import batch_update_hour, update_record
from app.services.notifications import WORKSHEET_UPDATED

from conftest import WORK_DATE


def entry(org, actual, product=None, process=None, planned=None, note=None):
    return ProductEntry(
        product_id=(product or org.p1).product_id,
        process_id=(process or org.c1).process_id,
        actual_output=actual,
        planned_output=planned,
        note=note,
    )


def output(worker, *entries, expected_version=None):
    return WorkerHourOutput(worker_id=worker.worker_id, entries=list(entries), expected_version=expected_version)


def _snapshot(db, worksheet_id, hour):
    db.expire_all()
    record = db.get(Worksheet, worksheet_id).record_for(hour)
    return (
        record.status,
        record.planned_output,
        record.actual_output,
        [(i.entry_index, i.product_id, i.process_id, i.planned_output, i.actual_output, i.note) for i in record.items],
    )


def test_end_to_end_single_worker_hour(db, org, make_worksheets, publisher):
    [ws] = make_worksheets(workers=[org.w1])
    assert len(ws.records) == 8
    assert all(r.status == RecordStatus.PENDING for r in ws.records)

    result = batch_update_hour(
        db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 150))], org.l1, publisher=publisher,
    )

    assert result.as_dict()["affected_workers"] == 1
    record = db.get(Worksheet, ws.worksheet_id).record_for(1)
    assert record.status == RecordStatus.COMPLETED
    assert record.planned_output == 180
    assert record.actual_output == 150
    assert record.updated_by_id == org.l1.worker_id
    assert efficiency(record_actual(record), record_planned_capacity(record, ws)) == 83

    assert publisher.events == [(WORKSHEET_UPDATED, {
        "group_id": str(org.g1.group_id),
        "date": WORK_DATE.isoformat(),
        "affected_workers": 1,
        "work_hour": 1,
    })]


def test_replaying_the_same_batch_gives_the_same_state(db, org, make_worksheets):
    [ws] = make_worksheets(workers=[org.w1])
    outputs = [output(
        org.w1,
        entry(org, 100, note="first"),
        entry(org, 40, process=org.c2, planned=60),
        entry(org, 10, product=org.p2),
    )]

    batch_update_hour(db, org.g1.group_id, 2, WORK_DATE, outputs, org.l1)
    first = _snapshot(db, ws.worksheet_id, 2)
    batch_update_hour(db, org.g1.group_id, 2, WORK_DATE, outputs, org.l1)
    second = _snapshot(db, ws.worksheet_id, 2)

    assert first == second
    status, planned, actual, items = second
    assert status == RecordStatus.COMPLETED
    assert planned == 180 + 60 + 180
    assert actual == 150
    assert [i[0] for i in items] == [1, 2, 3]
    assert db.get(Worksheet, ws.worksheet_id).record_for(2).version == 3


def test_entries_replace_rather_than_append(db, org, make_worksheets):
    [ws] = make_worksheets(workers=[org.w1])
    batch_update_hour(db, org.g1.group_id, 5, WORK_DATE, [output(org.w1, entry(org, 10), entry(org, 20))], org.l1)
    batch_update_hour(db, org.g1.group_id, 5, WORK_DATE, [output(org.w1, entry(org, 7, process=org.c2))], org.l1)

    _, _, actual, items = _snapshot(db, ws.worksheet_id, 5)
    assert actual == 7
    assert [(i[0], i[2]) for i in items] == [(1, org.c2.process_id)]


def test_workers_outside_the_group_are_skipped(db, org, make_worksheets):
    make_worksheets()
    stranger = uuid.uuid4()

    result = batch_update_hour(
        db, org.g1.group_id, 1, WORK_DATE,
        [output(org.w1, entry(org, 50)), output(org.v1, entry(org, 60)),
         WorkerHourOutput(worker_id=stranger, entries=[entry(org, 70)])],
        org.l1,
    )

    assert [row["worker_id"] for row in result.updated] == [str(org.w1.worker_id)]
    assert result.skipped_workers == [org.v1.worker_id, stranger]


def test_missing_hour_rolls_back_every_worker(db, org, make_worksheets):
    ws_a, ws_b = make_worksheets(workers=[org.w1, org.w2])
    if ws_a.worker_id != org.w1.worker_id:
        ws_a, ws_b = ws_b, ws_a
    ws_b.records.remove(ws_b.record_for(3))
    db.commit()

    with pytest.raises(BadRequest):
        batch_update_hour(
            db, org.g1.group_id, 3, WORK_DATE,
            [output(org.w1, entry(org, 100)), output(org.w2, entry(org, 90))],
            org.l1,
        )

    status, planned, actual, items = _snapshot(db, ws_a.worksheet_id, 3)
    assert status == RecordStatus.PENDING
    assert (planned, actual, items) == (180, 0, [])


def test_stale_expected_version_rejects_the_batch(db, org, make_worksheets):
    [ws_a, ws_b] = make_worksheets(workers=[org.w1, org.w2])

    result = batch_update_hour(
        db, org.g1.group_id, 6, WORK_DATE, [output(org.w1, entry(org, 10), expected_version=1)], org.l1,
    )
    assert result.updated[0]["version"] == 2

    with pytest.raises(ConflictError):
        batch_update_hour(
            db, org.g1.group_id, 6, WORK_DATE,
            [output(org.w2, entry(org, 55)), output(org.w1, entry(org, 99), expected_version=1)],
            org.l1,
        )

    worker_two = ws_a if ws_a.worker_id == org.w2.worker_id else ws_b
    assert _snapshot(db, worker_two.worksheet_id, 6)[0] == RecordStatus.PENDING


def test_only_leader_or_admin_may_submit(db, org, make_worksheets):
    make_worksheets()
    with pytest.raises(PermissionDenied):
        batch_update_hour(db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 1))], org.w2)
    with pytest.raises(PermissionDenied):
        batch_update_hour(db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 1))], org.l2)

    batch_update_hour(db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 1))], org.admin)


def test_scope_errors(db, org, make_worksheets):
    make_worksheets()
    with pytest.raises(NotFoundError):
        batch_update_hour(db, uuid.uuid4(), 1, WORK_DATE, [output(org.w1, entry(org, 1))], org.admin)
    with pytest.raises(NotFoundError):
        batch_update_hour(db, org.g2.group_id, 1, WORK_DATE, [output(org.v1, entry(org, 1))], org.admin)
    with pytest.raises(ValidationError):
        batch_update_hour(db, org.g1.group_id, 12, WORK_DATE, [output(org.w1, entry(org, 1))], org.admin)
    with pytest.raises(ValidationError):
        batch_update_hour(
            db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 1)), output(org.w1, entry(org, 2))], org.admin,
        )


def test_unconfigured_pair_in_entries_is_not_found(db, org, make_worksheets):
    [ws] = make_worksheets(workers=[org.w1])
    with pytest.raises(NotFoundError):
        batch_update_hour(
            db, org.g1.group_id, 1, WORK_DATE, [output(org.w1, entry(org, 5, product=org.p2, process=org.c2))], org.admin,
        )
    assert _snapshot(db, ws.worksheet_id, 1)[0] == RecordStatus.PENDING


def test_entry_schema_is_strict():
    with pytest.raises(ValueError):
        ProductEntry(product_id=uuid.uuid4(), process_id=uuid.uuid4(), actual_output=-1)
    with pytest.raises(ValueError):
        ProductEntry(product_id=uuid.uuid4(), process_id=uuid.uuid4(), actual_output=1, planned_output=0)
    with pytest.raises(ValueError):
        ProductEntry(product_id=uuid.uuid4(), process_id=uuid.uuid4(), actual_output=1, note="x" * 501)
    with pytest.raises(ValueError):
        ProductEntry(product_id="not-a-uuid", process_id=uuid.uuid4(), actual_output=1)
    with pytest.raises(ValueError):
        ProductEntry(product_id=uuid.uuid4(), process_id=uuid.uuid4(), actual_output=1, colour="red")


def test_update_record_single_worker(db, org, make_worksheets, publisher):
    [ws] = make_worksheets(workers=[org.w1])

    record = update_record(
        db, ws.worksheet_id, 7, [entry(org, 33, planned=40), entry(org, 12, process=org.c2)], org.l1,
        expected_version=1, publisher=publisher,
    )

    assert record.version == 2
    assert record.planned_output == 40 + 180
    assert record.actual_output == 45
    assert publisher.events[-1][1]["work_hour"] == 7

    with pytest.raises(ConflictError):
        update_record(db, ws.worksheet_id, 7, [entry(org, 1)], org.l1, expected_version=1)
    with pytest.raises(NotFoundError):
        update_record(db, ws.worksheet_id, 9, [entry(org, 1)], org.l1)


def test_batch_over_a_row_changed_by_another_session_is_rejected(db, engine, org, make_worksheets):
    [ws] = make_worksheets(workers=[org.w1])
    held = db.get(Worksheet, ws.worksheet_id).record_for(6)
    assert held.version == 1

    other = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        batch_update_hour(other, org.g1.group_id, 6, WORK_DATE, [output(org.w1, entry(org, 70))], org.admin)
    finally:
        other.close()

    # This session still holds version 1 of the row, so its flush matches nothing
    with pytest.raises(ConflictError):
        batch_update_hour(db, org.g1.group_id, 6, WORK_DATE, [output(org.w1, entry(org, 99))], org.l1)

    status, _, actual, items = _snapshot(db, ws.worksheet_id, 6)
    assert (status, actual) == (RecordStatus.COMPLETED, 70)
    assert [i[4] for i in items] == [70]
    assert db.get(Worksheet, ws.worksheet_id).record_for(6).version == 2


def test_expected_version_guards_sequential_batches(db, org, make_worksheets):
    [ws] = make_worksheets(workers=[org.w1])
    first = batch_update_hour(db, org.g1.group_id, 3, WORK_DATE, [output(org.w1, entry(org, 40))], org.l1)
    assert first.updated[0]["version"] == 2

    # A client that read version 1 before the first batch committed
    with pytest.raises(ConflictError):
        batch_update_hour(
            db, org.g1.group_id, 3, WORK_DATE, [output(org.w1, entry(org, 55), expected_version=1)], org.admin,
        )
    assert _snapshot(db, ws.worksheet_id, 3)[2] == 40

    # Without an expected version the later batch simply wins
    batch_update_hour(db, org.g1.group_id, 3, WORK_DATE, [output(org.w1, entry(org, 55))], org.admin)
    assert _snapshot(db, ws.worksheet_id, 3)[2] == 55
