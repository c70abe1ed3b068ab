from typing import Optional
from sqlmodel import SQLModel


class TeamMember(SQLModel):
    id: str
    created_time: Optional[str] = None
    name: str = ""
    team_id: Optional[str] = None
    role: Optional[str] = None  # Pitmaster, etc.
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None
