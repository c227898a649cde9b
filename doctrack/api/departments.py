from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_db
from doctrack.schemas.common import ListResponse
from doctrack.schemas.tracking import DepartmentCreate, DepartmentRead
from doctrack.services import directory as directory_service

router = APIRouter(prefix="/departments", tags=["departments"])


@router.post("", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
def create_department(payload: DepartmentCreate, db: Session = Depends(get_db)):
    return directory_service.departments.create(db, payload)


@router.get("", response_model=ListResponse[DepartmentRead])
def list_departments(db: Session = Depends(get_db)):
    items = directory_service.departments.list(db)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(department_id: str, db: Session = Depends(get_db)):
    directory_service.departments.delete(db, department_id)
