"""Shared fixtures: an in-memory SQLite store and a wired EntityTools."""

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from ect_core import Base, make_engine, Messenger, EntityTypeManager
from ect_api.crud import EntityTools


@pytest.fixture
def db_engine():
    engine = make_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = Session(bind=db_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def messenger() -> Messenger:
    return Messenger()


@pytest.fixture
def tools(db_session, messenger) -> EntityTools:
    return EntityTools(EntityTypeManager(db_session), messenger)
