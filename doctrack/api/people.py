from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_db
from doctrack.schemas.common import ListResponse
from doctrack.schemas.tracking import PersonCreate, PersonRead, PersonUpdate
from doctrack.services import directory as directory_service
from doctrack.services.common import paginate

router = APIRouter(prefix="/people", tags=["people"])


@router.post("", response_model=PersonRead, status_code=status.HTTP_201_CREATED)
def create_person(payload: PersonCreate, db: Session = Depends(get_db)):
    return directory_service.people.create(db, payload)


@router.get("/{person_id}", response_model=PersonRead)
def get_person(person_id: str, db: Session = Depends(get_db)):
    return directory_service.people.get(db, person_id)


@router.get("", response_model=ListResponse[PersonRead])
def list_people(
    department: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = directory_service.people.list(db, department)
    return {
        "items": paginate(items, limit, offset),
        "count": len(items),
        "limit": limit,
        "offset": offset,
    }


@router.patch("/{person_id}", response_model=PersonRead)
def update_person(person_id: str, payload: PersonUpdate, db: Session = Depends(get_db)):
    return directory_service.people.update(db, person_id, payload)
