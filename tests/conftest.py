import os

os.environ["SECRET_KEY"] = "test-secret"
os.environ["ADMIN_SIGNUP_SECRET"] = "let-me-in"
os.environ["NOTIFY_VIA_SMS"] = "false"
os.environ.pop("ENFORCE_STATUS_TRANSITIONS", None)

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from roadside_assist import models
from roadside_assist.database import Base, get_db, make_engine
from roadside_assist.main import app
from roadside_assist.security import hash_password, token_for

PASSWORD = "secret123"


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user):
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role="user", phone=None, password=PASSWORD):
        n = next(counter)
        user = models.User(
            phone=phone or f"+91900000{n:04d}",
            name=f"{role} {n}",
            role=role,
            password_hash=hash_password(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_workshop(db):
    counter = itertools.count(1)

    def _make(lat=12.9716, lng=77.5946, services=("Battery Jump", "Towing"), **kw):
        n = next(counter)
        workshop = models.Workshop(
            name=kw.pop("name", f"Garage {n}"),
            address=kw.pop("address", f"Area {n}, Bengaluru"),
            lat=lat,
            lng=lng,
            services=list(services),
            **kw,
        )
        db.add(workshop)
        db.commit()
        db.refresh(workshop)
        return workshop

    return _make


@pytest.fixture
def make_request(db):
    def _make(user, workshop=None, service="Battery Jump", status="pending", **kw):
        request = models.ServiceRequest(
            user_id=user.id,
            workshop_id=workshop.id if workshop is not None else None,
            service=service,
            status=status,
            **kw,
        )
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    return _make


@pytest.fixture
def assign(db):
    def _assign(worker, workshop, active=True, is_primary=False):
        assignment = models.WorkerAssignment(
            user_id=worker.id, workshop_id=workshop.id, active=active, is_primary=is_primary
        )
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    return _assign
