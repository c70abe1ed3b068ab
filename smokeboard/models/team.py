from typing import Optional
from sqlmodel import SQLModel


class Team(SQLModel):
    id: str
    created_time: Optional[str] = None
    name: str = ""
    school_id: str = ""
    school_name: Optional[str] = None
    division: str
    coach: Optional[str] = None
    state: Optional[str] = None
