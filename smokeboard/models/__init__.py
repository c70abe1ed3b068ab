from .reference import StateInfo
from .event import Event
from .school import School
from .team import Team
from .member import TeamMember
from .leaderboard import CategoryScore, LeaderboardEntry, LeaderboardResult, SkippedTeam, ScoreSubmission
from .stats import Stats

__all__ = [
    "StateInfo",
    "Event",
    "School",
    "Team",
    "TeamMember",
    "ScoreSubmission",
    "CategoryScore",
    "LeaderboardEntry",
    "LeaderboardResult",
    "SkippedTeam",
    "Stats",
]
