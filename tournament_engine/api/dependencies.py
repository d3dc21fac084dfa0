from typing import Optional

from fastapi import Header

from tournament_engine.core.database import SessionLocal
from tournament_engine.services.context import EngineContext


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine_context(x_actor_id: Optional[int] = Header(None)) -> EngineContext:
    # Authentication happens upstream; the gateway forwards the acting user id
    return EngineContext(actor_id=x_actor_id)
