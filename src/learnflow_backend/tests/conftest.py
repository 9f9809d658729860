"""
Pytest configuration and fixtures for all tests.

Every test runs against a fresh in-memory SQLite database. Object storage and
outbound email are replaced by in-process fakes through FastAPI dependency
overrides.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnflow_backend.database import get_db
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model import Base
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Index, Lecture, Section
from learnflow_backend.permissions.auth import hash_password
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.server import app
from learnflow_backend.services.email import get_email_service
from learnflow_backend.services.storage_service import get_storage_service

DEFAULT_PASSWORD = "secret123"


class FakeStorage:
    """Stands in for StorageService; keeps uploaded objects in a dict."""

    def __init__(self):
        self.objects = {}
        self.deleted = []

    async def ensure_bucket_exists(self, bucket):
        return bucket

    async def upload_file(self, file_data, object_key, bucket, content_type=None):
        data = file_data.read()
        self.objects[(bucket, object_key)] = data
        return len(data)

    async def delete_file(self, object_key, bucket):
        self.objects.pop((bucket, object_key), None)
        self.deleted.append((bucket, object_key))
        return True

    async def generate_presigned_url(self, object_key, bucket, expiry_seconds=3600, download_name=None):
        url = f"https://storage.test/{bucket}/{object_key}?expires={expiry_seconds}"
        if download_name:
            url += f"&name={download_name}"
        return url

    def public_url(self, object_key, bucket):
        return f"https://storage.test/{bucket}/{object_key}"


class FakeEmailService:
    """Records messages instead of sending them."""

    def __init__(self):
        self.invites = []
        self.reset_codes = []

    def send_invite(self, to, full_name, link):
        self.invites.append({"to": to, "full_name": full_name, "link": link})

    def send_reset_code(self, to, code):
        self.reset_codes.append({"to": to, "code": code})


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine

    # user.created_by is self-referential with ON DELETE RESTRICT
    with engine.connect() as connection:
        connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=connection)
        connection.commit()
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def app_overrides(db, storage, email_service):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: email_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_overrides):
    with TestClient(app_overrides) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make_user(username, role, created_by=None, email=None, password=DEFAULT_PASSWORD, is_active=True, full_name=None):
        user = User(
            username=username,
            email=email,
            full_name=full_name or username.title(),
            role=role,
            created_by=created_by.id if created_by is not None else None,
            password_hash=hash_password(password),
            password_set=True,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def login_as(app_overrides):
    """Return a new TestClient carrying a session cookie for the given user."""

    clients = []

    def _login_as(user, password=DEFAULT_PASSWORD):
        c = TestClient(app_overrides)
        response = c.post("/api/auth/login", json={"username": user.username, "password": password})
        assert response.status_code == 200, response.text
        clients.append(c)
        return c

    yield _login_as

    for c in clients:
        c.close()


@pytest.fixture
def make_tree(db):
    """Index with ``courses`` courses, each holding ``sections`` sections of ``lectures`` lectures."""

    def _make_tree(owner, courses=1, sections=1, lectures=2, duration=100, name="Onboarding"):
        index = Index(name=name, created_by=owner.id)
        db.add(index)
        db.flush()

        for c in range(courses):
            course = Course(index_id=index.id, created_by=owner.id, title=f"{name} course {c + 1}")
            db.add(course)
            db.flush()
            for s in range(sections):
                section = Section(course_id=course.id, title=f"Section {s + 1}", order_index=s)
                db.add(section)
                db.flush()
                for l in range(lectures):
                    db.add(Lecture(
                        section_id=section.id,
                        title=f"Lecture {l + 1}",
                        order_index=l,
                        duration_seconds=duration,
                    ))
        db.commit()
        db.refresh(index)
        return index

    return _make_tree


@pytest.fixture
def staff(make_user):
    """An admin with one trainer, one crm user and a candidate owned by the trainer."""

    admin = make_user("admin", UserRole.ADMIN)
    trainer = make_user("trainer_a", UserRole.TRAINER, created_by=admin, email="trainer_a@example.com")
    crm = make_user("crm_a", UserRole.CRM, created_by=admin, email="crm_a@example.com")
    candidate = make_user("cand_1", UserRole.CANDIDATE, created_by=trainer, email="cand_1@example.com")
    return {"admin": admin, "trainer": trainer, "crm": crm, "candidate": candidate}


def principal_for(user) -> Principal:
    return Principal(user_id=user.id, role=user.role, username=user.username)
