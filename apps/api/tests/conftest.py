"""
Shared fixtures for the worksheet API test suite.

Everything runs against an in-memory SQLite database built from the ORM
metadata. DATABASE_URL must be set before anything under ``app`` is imported,
because app.core.database builds its engine at import time.

Seeded org tree:

    F1 office
      D1 department
        T1 team
          G1 group: leader L1 + W1..W4 active, W9 inactive
          G2 group: leader L2 + V1
    F2 office
      D2 department
        T2 team
          G3 group: X1 (no leader)

Products P1, P2 and processes C1, C2 with pairings (P1, C1), (P1, C2),
(P2, C1). (P2, C2) is deliberately not configured.
"""

import os
import sys
from datetime import date
from types import SimpleNamespace

# ---------------------------------------------------------------------------
# Ensure ``apps/api/`` is on the import path and the engine targets SQLite.
# ---------------------------------------------------------------------------
_API_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _API_DIR not in sys.path:
    sys.path.insert(0, _API_DIR)

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, enable_sqlite_foreign_keys, get_db
from app.main import app
from app.models.department import Department
from app.models.enums import Role, ShiftType
from app.models.group import Group
from app.models.office import Office
from app.models.process import Process
from app.models.product import Product
from app.models.product_process import ProductProcess
from app.models.team import Team
from app.models.worker import Worker
from app.routers.auth import create_access_token
from app.services.notifications import RecordingPublisher, get_publisher
from app.services.worksheet_store import create_worksheets

WORK_DATE = date(2026, 3, 2)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def publisher():
    return RecordingPublisher()


def _worker(code: str, name: str, group=None, role=Role.USER, is_active=True) -> Worker:
    return Worker(employee_code=code, full_name=name, group=group, role=role, is_active=is_active)


@pytest.fixture
def org(db):
    f1 = Office(code="F1", name="Factory One")
    f2 = Office(code="F2", name="Factory Two")
    d1 = Department(code="D1", name="Assembly", office=f1)
    d2 = Department(code="D2", name="Packing", office=f2)
    t1 = Team(code="T1", name="Line A", department=d1)
    t2 = Team(code="T2", name="Line B", department=d2)
    g1 = Group(code="G1", name="Group One", team=t1)
    g2 = Group(code="G2", name="Group Two", team=t1)
    g3 = Group(code="G3", name="Group Three", team=t2)
    db.add_all([f1, f2, d1, d2, t1, t2, g1, g2, g3])
    db.flush()

    l1 = _worker("L1", "Lan Leader", g1)
    w1 = _worker("W1", "Worker One", g1)
    w2 = _worker("W2", "Worker Two", g1)
    w3 = _worker("W3", "Worker Three", g1)
    w4 = _worker("W4", "Worker Four", g1)
    w9 = _worker("W9", "Worker Gone", g1, is_active=False)
    l2 = _worker("L2", "Second Leader", g2)
    v1 = _worker("V1", "Group Two Worker", g2)
    x1 = _worker("X1", "Remote Worker", g3)
    admin = _worker("A1", "Plant Admin", role=Role.ADMIN)
    db.add_all([l1, w1, w2, w3, w4, w9, l2, v1, x1, admin])
    db.flush()

    g1.leader_id = l1.worker_id
    g2.leader_id = l2.worker_id

    p1 = Product(code="P1", name="Shirt")
    p2 = Product(code="P2", name="Jacket")
    c1 = Process(code="C1", name="Cutting")
    c2 = Process(code="C2", name="Sewing")
    db.add_all([p1, p2, c1, c2])
    db.flush()
    db.add_all([
        ProductProcess(product_id=p1.product_id, process_id=c1.process_id, standard_output_per_hour=180),
        ProductProcess(product_id=p1.product_id, process_id=c2.process_id, standard_output_per_hour=120),
        ProductProcess(product_id=p2.product_id, process_id=c1.process_id, standard_output_per_hour=90),
    ])
    db.commit()

    return SimpleNamespace(
        f1=f1, f2=f2, d1=d1, d2=d2, t1=t1, t2=t2, g1=g1, g2=g2, g3=g3,
        l1=l1, w1=w1, w2=w2, w3=w3, w4=w4, w9=w9, l2=l2, v1=v1, x1=x1, admin=admin,
        p1=p1, p2=p2, c1=c1, c2=c2,
    )


@pytest.fixture
def make_worksheets(db, org):
    """Create worksheets as the admin; defaults to all of G1, NORMAL_8H, 180/hour."""
    def _make(group=None, workers=None, shift_type=ShiftType.NORMAL_8H, per_hour=180,
              work_date=WORK_DATE, product=None, process=None, publisher=None):
        return create_worksheets(
            db,
            group_id=None if workers else (group or org.g1).group_id,
            worker_ids=[w.worker_id for w in workers] if workers else None,
            work_date=work_date,
            shift_type=shift_type,
            product_id=(product or org.p1).product_id,
            process_id=(process or org.c1).process_id,
            planned_output_per_hour=per_hour,
            actor=org.admin,
            publisher=publisher,
        )
    return _make


def auth_headers(worker: Worker) -> dict:
    token = create_access_token(data={"sub": str(worker.worker_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, publisher):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
