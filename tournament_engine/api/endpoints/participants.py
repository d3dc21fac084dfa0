from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tournament_engine.api.dependencies import get_db, get_engine_context
from tournament_engine.schemas import participant_schemas
from tournament_engine.services import participant_service
from tournament_engine.services.context import EngineContext

router = APIRouter()


@router.post("/", response_model=participant_schemas.ParticipantRead, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    tournament_id: int,
    registration: participant_schemas.RegistrationCreate,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.register(db=db, tournament_id=tournament_id, registration=registration, ctx=ctx)


@router.get("/", response_model=List[participant_schemas.ParticipantRead])
async def list_participants_endpoint(
    tournament_id: int, registration_status: Optional[str] = None, db: Session = Depends(get_db)
):
    return participant_service.list_participants(
        db=db, tournament_id=tournament_id, registration_status=registration_status
    )


@router.get("/{participant_id}", response_model=participant_schemas.ParticipantRead)
async def get_participant_endpoint(tournament_id: int, participant_id: int, db: Session = Depends(get_db)):
    return participant_service.get_participant(db=db, tournament_id=tournament_id, participant_id=participant_id)


@router.post("/{participant_id}/confirm", response_model=participant_schemas.ParticipantRead)
async def confirm_endpoint(
    tournament_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.confirm(db=db, tournament_id=tournament_id, participant_id=participant_id, ctx=ctx)


@router.post("/{participant_id}/waitlist", response_model=participant_schemas.ParticipantRead)
async def waitlist_endpoint(
    tournament_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.waitlist(db=db, tournament_id=tournament_id, participant_id=participant_id, ctx=ctx)


@router.post("/{participant_id}/reject", response_model=participant_schemas.ParticipantRead)
async def reject_endpoint(
    tournament_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.reject(db=db, tournament_id=tournament_id, participant_id=participant_id, ctx=ctx)


@router.post("/{participant_id}/withdraw", response_model=participant_schemas.ParticipantRead)
async def withdraw_endpoint(
    tournament_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.withdraw(db=db, tournament_id=tournament_id, participant_id=participant_id, ctx=ctx)


@router.post("/{participant_id}/disqualify", response_model=participant_schemas.ParticipantRead)
async def disqualify_endpoint(
    tournament_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.disqualify(db=db, tournament_id=tournament_id, participant_id=participant_id, ctx=ctx)


@router.post("/{participant_id}/payment", response_model=participant_schemas.ParticipantRead)
async def record_payment_endpoint(
    tournament_id: int,
    participant_id: int,
    payment: participant_schemas.PaymentRecord,
    db: Session = Depends(get_db),
    ctx: EngineContext = Depends(get_engine_context),
):
    return participant_service.record_payment(
        db=db, tournament_id=tournament_id, participant_id=participant_id, payment=payment, ctx=ctx
    )
