import logging
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy.orm import Session

from tournament_engine.schemas.event_schemas import DomainEvent
from tournament_engine.services.context import EngineContext

logger = logging.getLogger(__name__)


@contextmanager
def tournament_transaction(db: Session, tournament_id: int, ctx: EngineContext) -> Iterator[List[DomainEvent]]:
    """Run one state change on a tournament.

    Holds the tournament lock, yields an outbox the caller fills with domain
    events, commits on success and rolls back on any error. Events are only
    dispatched once the commit went through.
    """
    outbox: List[DomainEvent] = []
    with ctx.locks.hold(tournament_id):
        try:
            yield outbox
            db.commit()
        except Exception:
            db.rollback()
            raise
    if outbox:
        logger.debug("Committed %d event(s) for tournament %s", len(outbox), tournament_id)
        ctx.dispatcher.dispatch(outbox)
