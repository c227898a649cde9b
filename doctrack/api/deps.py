from fastapi import Depends, Header
from sqlalchemy.orm import Session

from doctrack.core.records import Actor
from doctrack.db import SessionLocal
from doctrack.services.directory import people


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_actor(
    x_person_id: str = Header(...),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the acting person from the ``X-Person-Id`` header."""
    return people.actor(db, x_person_id)
