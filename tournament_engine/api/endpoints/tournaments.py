from typing import Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tournament_engine.api.dependencies import get_db, get_engine_context
from tournament_engine.schemas import match_schemas, participant_schemas, tournament_schemas
from tournament_engine.services import match_service, seeding_service, tournament_service
from tournament_engine.services.context import EngineContext

router = APIRouter()


@router.post("/", response_model=tournament_schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
async def create_tournament_endpoint(
    tournament_in: tournament_schemas.TournamentCreate,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.create_tournament(db=db, tournament=tournament_in, ctx=ctx)


@router.get("/", response_model=List[tournament_schemas.TournamentRead])
async def list_tournaments_endpoint(
    filters: Annotated[tournament_schemas.TournamentFilter, Query()],
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.list_tournaments(db=db, filters=filters, ctx=ctx)


@router.get("/by-slug/{slug}", response_model=tournament_schemas.TournamentRead)
async def get_tournament_by_slug_endpoint(slug: str, db: Session = Depends(get_db)):
    return tournament_service.get_tournament_by_slug(db=db, slug=slug)


@router.get("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def get_tournament_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_service.get_tournament(db=db, tournament_id=tournament_id)


@router.delete("/{tournament_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    tournament_service.soft_delete_tournament(db=db, tournament_id=tournament_id, ctx=ctx)


@router.get("/{tournament_id}/can-register", response_model=Dict[str, bool])
async def can_register_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return {"can_register": tournament_service.can_register(db=db, tournament_id=tournament_id, ctx=ctx)}


@router.post("/{tournament_id}/open-registration", response_model=tournament_schemas.TournamentRead)
async def open_registration_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.open_registration(db=db, tournament_id=tournament_id, ctx=ctx)


@router.post("/{tournament_id}/close-registration", response_model=tournament_schemas.TournamentRead)
async def close_registration_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.close_registration(db=db, tournament_id=tournament_id, ctx=ctx)


@router.post("/{tournament_id}/start", response_model=tournament_schemas.TournamentRead)
async def start_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.start_tournament(db=db, tournament_id=tournament_id, ctx=ctx)


@router.post("/{tournament_id}/complete", response_model=tournament_schemas.TournamentRead)
async def complete_tournament_endpoint(
    tournament_id: int,
    results: tournament_schemas.TournamentResults,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.complete_tournament(db=db, tournament_id=tournament_id, results=results, ctx=ctx)


@router.post("/{tournament_id}/cancel", response_model=tournament_schemas.TournamentRead)
async def cancel_tournament_endpoint(
    tournament_id: int,
    request: tournament_schemas.CancelRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return tournament_service.cancel_tournament(db=db, tournament_id=tournament_id, reason=request.reason, ctx=ctx)


@router.post("/{tournament_id}/seeds/auto", response_model=Dict[int, int])
async def auto_assign_seeds_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return seeding_service.auto_assign_seeds(db=db, tournament_id=tournament_id, ctx=ctx)


@router.put("/{tournament_id}/seeds", response_model=Dict[int, int])
async def assign_seeds_endpoint(
    tournament_id: int,
    mapping: participant_schemas.SeedMapping,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return seeding_service.assign_seeds(db=db, tournament_id=tournament_id, mapping=mapping.seeds, ctx=ctx)


@router.get("/{tournament_id}/seeds/available", response_model=List[int])
async def available_seeds_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return seeding_service.available_seeds(db=db, tournament_id=tournament_id)


@router.get("/{tournament_id}/matches", response_model=List[match_schemas.MatchRead])
async def list_tournament_matches_endpoint(
    tournament_id: int, round_number: Optional[int] = None, db: Session = Depends(get_db)
):
    return match_service.list_matches(db=db, tournament_id=tournament_id, round_number=round_number)
