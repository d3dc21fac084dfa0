from dataclasses import replace
from typing import Optional

import pytest
from fastapi import Header
from fastapi.testclient import TestClient

from tournament_engine.api.dependencies import get_db, get_engine_context
from tournament_engine.main import app


@pytest.fixture
def client(session_factory, ctx):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_get_engine_context(x_actor_id: Optional[int] = Header(None)):
        return replace(ctx, actor_id=x_actor_id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine_context] = override_get_engine_context
    yield TestClient(app)
    app.dependency_overrides.clear()
