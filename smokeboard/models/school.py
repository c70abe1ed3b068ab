from typing import List, Optional
from sqlmodel import SQLModel, Field


class School(SQLModel):
    """A participating school, called a charter in the base."""

    id: str
    created_time: Optional[str] = None
    name: str = ""
    city: str = ""
    state: str = ""
    district: Optional[str] = None  # County
    logo_url: Optional[str] = None
    team_ids: List[str] = Field(default_factory=list)
