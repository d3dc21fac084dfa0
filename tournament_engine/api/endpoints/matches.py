from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tournament_engine.api.dependencies import get_db, get_engine_context
from tournament_engine.schemas import match_schemas
from tournament_engine.services import match_service
from tournament_engine.services.context import EngineContext

router = APIRouter()


@router.post("/", response_model=match_schemas.MatchRead, status_code=status.HTTP_201_CREATED)
async def create_match_endpoint(
    match_in: match_schemas.MatchCreate,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.create_match(db=db, data=match_in, ctx=ctx)


@router.get("/{match_id}", response_model=match_schemas.MatchRead)
async def get_match_endpoint(match_id: int, db: Session = Depends(get_db)):
    return match_service.get_match(db=db, match_id=match_id)


@router.get("/{match_id}/events", response_model=List[match_schemas.MatchEventRead])
async def list_match_events_endpoint(match_id: int, db: Session = Depends(get_db)):
    return match_service.list_events(db=db, match_id=match_id)


@router.post("/{match_id}/ready", response_model=match_schemas.MatchRead)
async def mark_ready_endpoint(
    match_id: int, db: Session = Depends(get_db), ctx: EngineContext = Depends(get_engine_context)
):
    return match_service.mark_ready(db=db, match_id=match_id, ctx=ctx)


@router.post("/{match_id}/start", response_model=match_schemas.MatchRead)
async def start_match_endpoint(
    match_id: int, db: Session = Depends(get_db), ctx: EngineContext = Depends(get_engine_context)
):
    return match_service.start_match(db=db, match_id=match_id, ctx=ctx)


@router.post("/{match_id}/result", response_model=match_schemas.MatchRead)
async def submit_match_result_endpoint(
    match_id: int,
    result: match_schemas.MatchResultSubmit,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.complete_match(db=db, match_id=match_id, result=result, ctx=ctx)


@router.post("/{match_id}/walkover", response_model=match_schemas.MatchRead)
async def walkover_endpoint(
    match_id: int,
    request: match_schemas.WalkoverRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.walkover(db=db, match_id=match_id, request=request, ctx=ctx)


@router.post("/{match_id}/no-show", response_model=match_schemas.MatchRead)
async def no_show_endpoint(
    match_id: int,
    request: match_schemas.NoShowRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.no_show(db=db, match_id=match_id, request=request, ctx=ctx)


@router.post("/{match_id}/postpone", response_model=match_schemas.MatchRead)
async def postpone_endpoint(
    match_id: int,
    request: match_schemas.ReasonRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.postpone(db=db, match_id=match_id, reason=request.reason, ctx=ctx)


@router.post("/{match_id}/cancel", response_model=match_schemas.MatchRead)
async def cancel_match_endpoint(
    match_id: int,
    request: match_schemas.ReasonRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.cancel(db=db, match_id=match_id, reason=request.reason, ctx=ctx)


@router.post("/{match_id}/reschedule", response_model=match_schemas.MatchRead)
async def reschedule_endpoint(
    match_id: int,
    request: match_schemas.RescheduleRequest,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return match_service.reschedule(db=db, match_id=match_id, request=request, ctx=ctx)
