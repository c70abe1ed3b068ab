"""
Event leaderboard: average every team's judged turn-ins, sort, rank.

Every team linked to the event appears on the board, including teams with
no qualifying turn-ins (they score 0). Ranks are dense, 1..N. Equal scores
are ordered by team name (case-insensitive), then team id, so the same
data always produces the same board.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .. import config
from ..models import (
    CategoryScore,
    LeaderboardEntry,
    LeaderboardResult,
    ScoreSubmission,
    SkippedTeam,
    Team,
)
from .airtable import AirtableClient, Record
from .lookups import CATEGORY, LookupCache
from .resolvers import first_linked_id, get_team, linked_ids

logger = logging.getLogger(__name__)


def to_submission(record: Record, lookups: LookupCache) -> Optional[ScoreSubmission]:
    fields = record.get("fields", {})
    raw_score = fields.get("Total Score")
    try:
        total_score = float(raw_score) if raw_score not in (None, "") else 0.0
    except (TypeError, ValueError):
        logger.warning("Turn-in %s has a non-numeric score %r", record.get("id"), raw_score)
        return None

    return ScoreSubmission(
        id=record["id"],
        team_id=first_linked_id(fields.get("Team")),
        event_ids=linked_ids(fields.get("Event")),
        category=lookups.resolve(CATEGORY, first_linked_id(fields.get("Category"))),
        total_score=total_score,
    )


def _mean(scores: List[float]) -> float:
    return round(sum(scores) / len(scores), 2)


def _order_key(score: float, team: Team) -> Tuple[float, str, str]:
    return (-score, (team.name or "").lower(), team.id)


def rank_entries(
    teams: Sequence[Team],
    submissions: Sequence[ScoreSubmission],
    category: str = config.OVERALL_CATEGORY,
) -> List[LeaderboardEntry]:
    """
    Build the ranked board for already-resolved teams.

    ``submissions`` must already be limited to the event. When ``category``
    is anything but "Overall" only turn-ins in that category count.
    """
    if category != config.OVERALL_CATEGORY:
        submissions = [s for s in submissions if s.category == category]

    overall: Dict[str, List[float]] = defaultdict(list)
    per_category: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
    for submission in submissions:
        if not submission.team_id:
            continue
        overall[submission.team_id].append(submission.total_score)
        if submission.category:
            per_category[submission.team_id][submission.category].append(submission.total_score)

    # Per-category ranks among the teams that turned something in
    by_id = {team.id: team for team in teams}
    category_means: Dict[str, Dict[str, float]] = {
        team_id: {name: _mean(scores) for name, scores in cats.items()}
        for team_id, cats in per_category.items()
        if team_id in by_id
    }
    category_ranks: Dict[Tuple[str, str], int] = {}
    for name in {name for cats in category_means.values() for name in cats}:
        contenders = sorted(
            (team_id for team_id, cats in category_means.items() if name in cats),
            key=lambda team_id: _order_key(category_means[team_id][name], by_id[team_id]),
        )
        for position, team_id in enumerate(contenders, start=1):
            category_ranks[(team_id, name)] = position

    scored = []
    for team in teams:
        score = _mean(overall[team.id]) if overall.get(team.id) else 0.0
        scored.append((score, team))
    scored.sort(key=lambda pair: _order_key(*pair))

    entries = []
    for position, (score, team) in enumerate(scored, start=1):
        entries.append(LeaderboardEntry(
            rank=position,
            team_id=team.id,
            team_name=team.name,
            school_id=team.school_id,
            school_name=team.school_name or "",
            state=team.state or "",
            division=team.division,
            score=score,
            category_scores={
                name: CategoryScore(score=value, rank=category_ranks[(team.id, name)])
                for name, value in sorted(category_means.get(team.id, {}).items())
            },
        ))
    return entries


async def _resolve_team(
    client: AirtableClient, lookups: LookupCache, team_id: str
) -> Union[Team, SkippedTeam]:
    try:
        team = await get_team(client, lookups, team_id)
    except Exception as exc:
        # Any per-team failure, including a malformed record, skips only that team
        logger.exception("Error resolving team %s", team_id)
        return SkippedTeam(team_id=team_id, reason=str(exc))
    if team is None:
        logger.warning("Event references missing team %s", team_id)
        return SkippedTeam(team_id=team_id, reason="Team not found")
    return team


async def compute_leaderboard(
    client: AirtableClient,
    lookups: LookupCache,
    event_id: str,
    category: str = config.OVERALL_CATEGORY,
) -> LeaderboardResult:
    """
    Leaderboard for one event, optionally limited to a scoring category.

    Raises RecordNotFound when the event does not exist. Teams that cannot
    be resolved are left off the board and reported in ``skipped``.
    """
    await lookups.ensure_all(client)
    event = await client.get_record(config.TABLES["events"], event_id)

    # dict.fromkeys drops duplicate links while keeping their order
    team_ids = list(dict.fromkeys(linked_ids(event.get("fields", {}).get("Teams"))))
    if not team_ids:
        return LeaderboardResult()

    # Turn-ins are filtered by event link here, not by the service
    turn_ins = await client.list_records(config.TABLES["turn_ins"])
    submissions = []
    for record in turn_ins:
        submission = to_submission(record, lookups)
        if submission and event_id in submission.event_ids:
            submissions.append(submission)

    resolved = await asyncio.gather(*(_resolve_team(client, lookups, team_id) for team_id in team_ids))
    teams = [item for item in resolved if isinstance(item, Team)]
    skipped = [item for item in resolved if isinstance(item, SkippedTeam)]

    return LeaderboardResult(entries=rank_entries(teams, submissions, category), skipped=skipped)
