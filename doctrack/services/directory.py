import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from doctrack.core.records import Actor
from doctrack.models.tracking import Department, Person
from doctrack.schemas.tracking import DepartmentCreate, PersonCreate, PersonUpdate
from doctrack.services.common import coerce_uuid

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


class Departments:
    @staticmethod
    def create(db: Session, payload: DepartmentCreate) -> Department:
        name = payload.name.strip()
        exists = db.scalar(select(Department).where(Department.name == name))
        if exists:
            raise HTTPException(status_code=409, detail="Department already exists")
        department = Department(name=name)
        db.add(department)
        db.commit()
        db.refresh(department)
        logger.info("Created department %s", department.name)
        return department

    @staticmethod
    def list(db: Session) -> list[Department]:
        return db.scalars(select(Department).order_by(Department.name)).all()

    @staticmethod
    def names(db: Session) -> set[str]:
        return set(db.scalars(select(Department.name)).all())

    @staticmethod
    def delete(db: Session, department_id: str) -> None:
        # Historical rows keep the name, so deleting does not rewrite them.
        department = db.get(Department, coerce_uuid(department_id))
        if not department:
            raise HTTPException(status_code=404, detail="Department not found")
        db.delete(department)
        db.commit()
        logger.info("Deleted department %s", department.name)


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------


class People:
    @staticmethod
    def create(db: Session, payload: PersonCreate) -> Person:
        if payload.department not in Departments.names(db):
            raise HTTPException(status_code=404, detail="Department not found")
        person = Person(**payload.model_dump())
        db.add(person)
        db.commit()
        db.refresh(person)
        logger.info("Created person %s in %s", person.id, person.department)
        return person

    @staticmethod
    def get(db: Session, person_id: str) -> Person:
        person = db.get(Person, coerce_uuid(person_id))
        if not person:
            raise HTTPException(status_code=404, detail="Person not found")
        return person

    @staticmethod
    def list(db: Session, department: str | None = None) -> list[Person]:
        stmt = select(Person).order_by(Person.name)
        if department is not None:
            stmt = stmt.where(Person.department == department)
        return db.scalars(stmt).all()

    @staticmethod
    def update(db: Session, person_id: str, payload: PersonUpdate) -> Person:
        person = People.get(db, person_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("department") is not None:
            if data["department"] not in Departments.names(db):
                raise HTTPException(status_code=404, detail="Department not found")
        for key, value in data.items():
            setattr(person, key, value)
        db.commit()
        db.refresh(person)
        logger.info("Updated person %s", person.id)
        return person

    @staticmethod
    def actor(db: Session, person_id: str) -> Actor:
        person = People.get(db, person_id)
        if not person.is_active:
            raise HTTPException(status_code=403, detail="Person is inactive")
        return Actor.model_validate(person)

    @staticmethod
    def departments_by_id(db: Session) -> dict[str, str]:
        """Current department of every person, keyed by person id."""
        rows = db.execute(select(Person.id, Person.department)).all()
        return {str(person_id): department for person_id, department in rows}


departments = Departments()
people = People()
