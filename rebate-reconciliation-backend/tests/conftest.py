"""Pytest fixtures and factories.

Upstream systems are replaced by the in-memory integrations; the preference
table lives in a file-based SQLite database shared by every test.
"""
import asyncio
import os
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'rebate_service' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from rebate_service.main import app  # type: ignore
from rebate_service.database import Base  # type: ignore
from rebate_service.api import deps  # type: ignore
from rebate_service.integrations import InMemoryBlobStore, InMemoryCollaborationSource, Integrations
from rebate_service.models.db import UserPreference
from rebate_service.models.schemas.collaborations import Project
from rebate_service.services.controller import ControllerRegistry, RebateController
from rebate_service.services.preferences import PreferenceStore
from rebate_service.services.session import RebateSession
from rebate_service.services.task_aggregator import aggregate_rebate_tasks

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_rebate_preferences.db"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_rebate_preferences.db")
    except OSError:
        pass

@pytest.fixture(autouse=True)
def _isolate_preferences():
    """Each test starts without stored preferences."""
    with TestingSessionLocal() as db:
        db.query(UserPreference).delete()
        db.commit()
    yield

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db

# ---------- Data factory helpers ----------

def make_record(
    record_id: str,
    *,
    project_id: str = "p1",
    talent_name: str = "Alice",
    receivable=1000.0,
    actual=None,
    recovery_date=None,
    reason=None,
    evidence=None,
    talent_source="WildTalent",
    status: str = "Published",
) -> dict:
    """Collaboration record in the upstream (camelCase, nested) shape."""
    record = {
        "id": record_id,
        "projectId": project_id,
        "talentId": f"talent-{record_id}",
        "talentInfo": {"nickname": talent_name},
        "status": status,
        "publishDate": "2024-01-01",
        "metrics": {"rebateReceivable": receivable},
        "actualRebate": actual,
        "recoveryDate": recovery_date,
        "discrepancyReason": reason,
        "rebateScreenshots": list(evidence or []),
    }
    if talent_source is not None:
        record["talentSource"] = talent_source
    return record

@pytest.fixture()
def record_factory():
    return make_record

@pytest.fixture()
def projects():
    return [Project(id="p1", name="Spring Launch"), Project(id="p2", name="Summer Sale")]

@pytest.fixture()
def source(projects):
    return InMemoryCollaborationSource(projects=projects, failure_rate=0.0)

@pytest.fixture()
def blobs():
    return InMemoryBlobStore(failure_rate=0.0)

@pytest.fixture()
def integrations(source, blobs):
    return Integrations(collaborations=source, projects=source, blobs=blobs)

@pytest.fixture()
def preferences():
    return PreferenceStore(TestingSessionLocal)

@pytest.fixture()
def session_factory(source):
    """Build a loaded RebateSession from the current contents of ``source``."""
    def _build(client_id: str = "tester") -> RebateSession:
        records = asyncio.run(source.list_collaborations())
        project_list = asyncio.run(source.list_projects())
        session = RebateSession(client_id=client_id)
        session.replace_tasks(project_list, aggregate_rebate_tasks(records, project_list))
        return session
    return _build

@pytest.fixture()
def controller_factory(integrations, preferences):
    def _create(client_id: str = "tester") -> RebateController:
        return RebateController(client_id, integrations, preferences)
    return _create

@pytest.fixture()
def client(integrations, preferences):
    # Tests bypass the lifespan; wire the registry the way it would
    app.state.controllers = ControllerRegistry(integrations, preferences)
    yield TestClient(app)
    app.state.controllers = None
