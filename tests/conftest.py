from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from staff_portal.infra.db import Base, init_db, make_session_factory


@pytest.fixture()
def session_factory():
    """Session factory bound to a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield make_session_factory(engine)
    Base.metadata.drop_all(engine)
    engine.dispose()
