from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from doctrack.api.deps import get_db, require_actor
from doctrack.core.records import Actor
from doctrack.schemas.sessions import SessionCheck, SessionEnd, SessionRead
from doctrack.services import sessions as session_service
from doctrack.services.common import coerce_uuid

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _require_self_or_admin(person_id: str, actor: Actor) -> None:
    if actor.is_admin or str(coerce_uuid(actor.id)) == str(coerce_uuid(person_id)):
        return
    raise HTTPException(
        status_code=403, detail="Sessions can only be managed by their owner"
    )


@router.get("/{person_id}", response_model=SessionRead)
def get_session(
    person_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    _require_self_or_admin(person_id, actor)
    return session_service.sessions.get(db, person_id)


@router.post("/{person_id}", response_model=SessionRead)
def begin_session(
    person_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    _require_self_or_admin(person_id, actor)
    return session_service.sessions.begin(db, person_id)


@router.post("/{person_id}/end", response_model=SessionRead)
def end_session(
    person_id: str,
    payload: SessionEnd,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    _require_self_or_admin(person_id, actor)
    return session_service.sessions.end(db, person_id, payload.token)


@router.get("/{person_id}/check", response_model=SessionCheck)
def check_session(
    person_id: str,
    token: int = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    _require_self_or_admin(person_id, actor)
    return {
        "token": token,
        "must_terminate": session_service.sessions.must_terminate(db, person_id, token),
    }
