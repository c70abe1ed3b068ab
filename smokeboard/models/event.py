from typing import List, Optional
from sqlmodel import SQLModel, Field


class Event(SQLModel):
    id: str
    created_time: Optional[str] = None
    name: str = ""
    date: Optional[str] = None  # ISO date as stored in the base
    location: str = ""
    city: str = ""
    state: str = ""
    division: str
    status: str  # upcoming / live / completed, derived on every read
    description: Optional[str] = None
    registered_teams: Optional[int] = None
    categories: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    team_ids: List[str] = Field(default_factory=list)
