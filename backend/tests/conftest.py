"""Shared pytest fixtures.

Provides reusable test fixtures for:
- In-memory SQLite database session (tables created per test)
- Test organizations and departments
- Users for every role, with JWT auth headers
- An in-memory object storage double
- A FastAPI TestClient wired to the test session and storage

Usage:
    def test_upload(client, finance_staff, auth_headers):
        response = client.post("/api/v1/documents", headers=auth_headers(finance_staff), ...)
        assert response.status_code == 201
"""

import hashlib
import os
import sys
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Dict, Generator, Optional
from uuid import UUID

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docflow.auth.jwt import create_access_token
from docflow.database import get_db as database_get_db
from docflow.domain.documents.ports.object_storage_port import ObjectStoragePort, StoredFile
from docflow.documents import service as document_service
from docflow.events.subscribers import build_event_bus
from docflow.infrastructure.storage.storage_config import get_object_storage
from docflow.main import app
from docflow.models import (
    ApprovalWorkflow,
    Base,
    Department,
    Org,
    Project,
    ProjectRequiredDocument,
    User,
)


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _sqlite_manual_transactions(dbapi_connection, connection_record):
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT nesting
    dbapi_connection.isolation_level = None


@event.listens_for(test_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class InMemoryObjectStorage(ObjectStoragePort):
    """ObjectStoragePort double keeping objects in a dict."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted = []

    async def store_file(self, file: BinaryIO, org_id: UUID, filename: str, mime_type: str) -> StoredFile:
        content = file.read()
        if not content:
            raise ValueError("Cannot store empty file")
        sha256 = hashlib.sha256(content).hexdigest()
        ext = Path(filename).suffix.lower()
        key = f"{org_id}/{sha256}{ext}"
        created = key not in self.objects
        self.objects[key] = content
        return StoredFile(
            storage_key=key,
            sha256=sha256,
            size_bytes=len(content),
            mime_type=mime_type,
            created=created,
        )

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        if storage_key not in self.objects:
            raise FileNotFoundError(storage_key)
        return BytesIO(self.objects[storage_key])

    async def delete_file(self, storage_key: str) -> bool:
        self.deleted.append(storage_key)
        return self.objects.pop(storage_key, None) is not None

    async def file_exists(self, storage_key: str) -> bool:
        return storage_key in self.objects

    def file_url(self, storage_key: str) -> str:
        return f"memory://{storage_key}"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def org(db_session: Session) -> Org:
    org = Org(name="Acme Ltd", slug="acme", code="ACME")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def other_org(db_session: Session) -> Org:
    org = Org(name="Globex Corp", slug="globex", code="GLX")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def finance_dept(db_session: Session, org: Org) -> Department:
    department = Department(org_id=org.id, name="Finance")
    db_session.add(department)
    db_session.commit()
    return department


@pytest.fixture
def hr_dept(db_session: Session, org: Org) -> Department:
    department = Department(org_id=org.id, name="Human Resources")
    db_session.add(department)
    db_session.commit()
    return department


@pytest.fixture
def make_user(db_session: Session, org: Org):
    """Factory: make_user("HOD", department, email=...)"""
    counter = {"n": 0}

    def _make(role: str, department: Optional[Department] = None, email: Optional[str] = None,
              org_id: Optional[UUID] = None, status: str = "ACTIVE") -> User:
        counter["n"] += 1
        user = User(
            org_id=org_id or org.id,
            department_id=department.id if department else None,
            email=email or f"{role.lower()}{counter['n']}@acme.test",
            name=f"{role.title()} {counter['n']}",
            role=role,
            status=status,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user("SUPER_ADMIN", email="admin@acme.test")


@pytest.fixture
def finance_hod(make_user, finance_dept) -> User:
    return make_user("HOD", finance_dept, email="hod.finance@acme.test")


@pytest.fixture
def finance_manager(make_user, finance_dept) -> User:
    return make_user("MANAGER", finance_dept, email="manager.finance@acme.test")


@pytest.fixture
def finance_staff(make_user, finance_dept) -> User:
    return make_user("STAFF", finance_dept, email="staff.finance@acme.test")


@pytest.fixture
def hr_hod(make_user, hr_dept) -> User:
    return make_user("HOD", hr_dept, email="hod.hr@acme.test")


@pytest.fixture
def hr_staff(make_user, hr_dept) -> User:
    return make_user("STAFF", hr_dept, email="staff.hr@acme.test")


@pytest.fixture
def viewer(make_user, finance_dept) -> User:
    return make_user("VIEWER", finance_dept, email="viewer@acme.test")


@pytest.fixture
def auth_headers():
    """Factory returning Authorization headers for a user."""

    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(
            user_id=user.id,
            org_id=user.org_id,
            role=user.role,
            email=user.email,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def client(db_session: Session, storage: InMemoryObjectStorage) -> Generator[TestClient, None, None]:
    """TestClient using the test session and in-memory storage."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[get_object_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_workflow(db_session: Session, org: Org):
    """Factory for active approval workflows."""

    def _make(category: str = "ALL", department: Optional[Department] = None,
              steps: Optional[list] = None, name: str = "Default review", is_active: bool = True) -> ApprovalWorkflow:
        workflow = ApprovalWorkflow(
            org_id=org.id,
            name=name,
            category=category,
            department_id=department.id if department else None,
            is_active=is_active,
            steps=steps if steps is not None else [{"level": 1}],
        )
        db_session.add(workflow)
        db_session.commit()
        return workflow

    return _make


@pytest.fixture
def make_project(db_session: Session, org: Org):
    """Factory for projects with a required document checklist."""

    def _make(required_types=("Project Proposal", "Budget Breakdown"), status: str = "planning",
              department: Optional[Department] = None, approval_chain: Optional[list] = None) -> Project:
        project = Project(
            org_id=org.id,
            name="Warehouse Expansion",
            code="PRJ-001",
            status=status,
            department_id=department.id if department else None,
            approval_chain=approval_chain or [],
        )
        db_session.add(project)
        db_session.flush()
        for document_type in required_types:
            db_session.add(ProjectRequiredDocument(project_id=project.id, document_type=document_type))
        db_session.commit()
        return project

    return _make


@pytest.fixture
def create_document(db_session: Session):
    """Create a document through the service layer, without HTTP or storage.

    Returns (document, event_bus).
    """
    counter = {"n": 0}

    def _create(actor: User, category: str = "Financial", document_type: str = "Invoice",
                title: str = "Supplier invoice", events=None, **fields):
        counter["n"] += 1
        content = f"{title}-{counter['n']}".encode()
        sha256 = hashlib.sha256(content).hexdigest()
        upload = document_service.UploadedFile(
            stored=StoredFile(
                storage_key=f"{actor.org_id}/{sha256}.pdf",
                sha256=sha256,
                size_bytes=1536,
                mime_type="application/pdf",
            ),
            file_name=f"{sha256}.pdf",
            original_file_name=fields.pop("original_file_name", "invoice.pdf"),
            file_url=f"memory://{actor.org_id}/{sha256}.pdf",
        )
        data = document_service.DocumentInput(
            title=title,
            category=category,
            document_type=document_type,
            **fields,
        )
        events = events or build_event_bus(db_session)
        document = document_service.create_document(db_session, actor, data, upload, events)
        db_session.commit()
        return document, events

    return _create


@pytest.fixture
def upload_file(client: TestClient, auth_headers):
    """POST a multipart upload as the given user."""

    def _upload(user: User, content: bytes = b"%PDF-1.4 test", filename: str = "report.pdf",
                mime_type: str = "application/pdf", **form):
        data = {
            "title": "Quarterly report",
            "category": "Financial",
            "document_type": "Financial Report",
        }
        data.update({key: str(value) for key, value in form.items() if value is not None})
        return client.post(
            "/api/v1/documents",
            headers=auth_headers(user),
            files={"file": (filename, content, mime_type)},
            data=data,
        )

    return _upload
