"""Pytest configuration and shared fixtures."""

import os
import tempfile

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point the app at a throwaway database before it is imported
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.gettempdir(), "workload_dashboard_test.db")

from fastapi.testclient import TestClient

from workload_dashboard.db import Base
from workload_dashboard.store import DashboardStore
from workload_dashboard.main import app
from workload_dashboard.api import get_store


@pytest.fixture
def db_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'dashboard.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(session_factory):
    return DashboardStore(session_factory, default_available_hours=40.0)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db_session):
    """Add rows and commit; returns the added objects with ids populated."""
    def _seed(*objs):
        db_session.add_all(objs)
        db_session.commit()
        return objs
    return _seed
