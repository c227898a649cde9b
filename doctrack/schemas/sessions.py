from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    person_id: str
    token: int
    is_active: bool
    updated_at: datetime | None = None


class SessionEnd(BaseModel):
    token: int


class SessionCheck(BaseModel):
    token: int
    must_terminate: bool
