from typing import Dict, List, Optional
from sqlmodel import SQLModel, Field


class ScoreSubmission(SQLModel):
    """A judged turn-in: one team, one event, one category, one total score."""

    id: str
    team_id: Optional[str] = None
    event_ids: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    total_score: float = 0.0


class CategoryScore(SQLModel):
    score: float
    rank: int


class LeaderboardEntry(SQLModel):
    rank: int
    team_id: str
    team_name: str
    school_id: str = ""
    school_name: str = ""
    state: str = ""
    division: str
    score: float = 0.0
    category_scores: Dict[str, CategoryScore] = Field(default_factory=dict)


class SkippedTeam(SQLModel):
    team_id: str
    reason: str


class LeaderboardResult(SQLModel):
    entries: List[LeaderboardEntry] = Field(default_factory=list)
    skipped: List[SkippedTeam] = Field(default_factory=list)
