"""
Turn raw data service records into domain models.

Linked-record fields are resolved through the lookup cache. A link that
cannot be resolved degrades to a fallback value instead of failing the
whole record.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .. import config
from ..errors import DataServiceError, RecordNotFound
from ..models import Event, School, Stats, Team, TeamMember
from .airtable import AirtableClient, Record
from .lookups import CATEGORY, DIVISION, STATE, LookupCache
from .status import derive_status

logger = logging.getLogger(__name__)

TABLES = config.TABLES

# Scan/result caps for the free-text searches
SEARCH_SCAN_LIMIT = 50
SEARCH_RESULT_LIMIT = 20


def first_linked_id(value: Any) -> Optional[str]:
    if isinstance(value, list) and value and isinstance(value[0], str):
        return value[0]
    return None


def linked_ids(value: Any) -> List[str]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def image_url(value: Any) -> Optional[str]:
    """URL of the first attachment in an attachment field."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0].get("url")
    return None


def parse_city(location: Optional[str]) -> str:
    # "Fort Worth, TX" -> "Fort Worth"; best effort on free text
    if not location:
        return ""
    return location.split(",", 1)[0].strip()


def _state_label(lookups: LookupCache, state_id: Optional[str]) -> str:
    info = lookups.resolve(STATE, state_id)
    return info.label if info else ""


def to_event(record: Record, lookups: LookupCache, now: Optional[datetime] = None) -> Event:
    fields = record.get("fields", {})
    location = fields.get("Location") or ""
    categories = lookups.resolve_many(CATEGORY, linked_ids(fields.get("Category")))
    event_date = fields.get("Event Date")

    return Event(
        id=record["id"],
        created_time=record.get("createdTime"),
        name=fields.get("Event Name") or "",
        date=event_date,
        location=location,
        city=parse_city(location),
        state=_state_label(lookups, first_linked_id(fields.get("State"))),
        division=lookups.resolve(DIVISION, first_linked_id(fields.get("Division")))
        or config.DEFAULT_DIVISION,
        status=derive_status(event_date, now),
        description=fields.get("Description"),
        registered_teams=fields.get("Team Count"),
        categories=categories or list(config.DEFAULT_CATEGORIES),
        image_url=image_url(fields.get("Event Photo")),
        team_ids=linked_ids(fields.get("Teams")),
    )


def to_team(record: Record, lookups: LookupCache, school: Optional[Record] = None) -> Team:
    fields = record.get("fields", {})
    school_fields = school.get("fields", {}) if school else {}

    return Team(
        id=record["id"],
        created_time=record.get("createdTime"),
        name=fields.get("Team Name") or "",
        school_id=school["id"] if school else "",
        school_name=school_fields.get("Charter Name"),
        division=lookups.resolve(DIVISION, first_linked_id(fields.get("Division")))
        or config.DEFAULT_DIVISION,
        coach=fields.get("Advisor / Coach"),
        state=fields.get("State"),
    )


def to_school(record: Record, lookups: LookupCache) -> School:
    fields = record.get("fields", {})
    return School(
        id=record["id"],
        created_time=record.get("createdTime"),
        name=fields.get("Charter Name") or "",
        city=fields.get("City") or "",
        state=_state_label(lookups, first_linked_id(fields.get("State"))),
        district=fields.get("County"),
        logo_url=image_url(fields.get("Charter Photo")),
        team_ids=linked_ids(fields.get("Teams")),
    )


def to_member(record: Record, team_id: Optional[str] = None) -> TeamMember:
    fields = record.get("fields", {})
    return TeamMember(
        id=record["id"],
        created_time=record.get("createdTime"),
        name=fields.get("Member Name") or "",
        team_id=team_id or first_linked_id(fields.get("Team")),
        role=fields.get("Role"),
        email=fields.get("Email"),
        phone=fields.get("Phone"),
        photo_url=image_url(fields.get("Photo")),
    )


def _matches(query: str, *values: Optional[str]) -> bool:
    query = query.strip().lower()
    if not query:
        return True
    return any(query in (value or "").lower() for value in values)


# --- Events -----------------------------------------------------------------

async def get_events(
    client: AirtableClient,
    lookups: LookupCache,
    status: Optional[str] = None,
    division: Optional[str] = None,
    state: Optional[str] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Event]:
    await lookups.ensure_all(client)
    records = await client.list_records(
        TABLES["events"],
        sort=[("Event Date", "desc")],
        max_records=limit or config.DEFAULT_EVENT_LIMIT,
    )

    events = []
    for record in records:
        event = to_event(record, lookups, now)
        if division and event.division != division:
            continue
        if state:
            info = lookups.resolve(STATE, first_linked_id(record.get("fields", {}).get("State")))
            if not info or state not in (info.abbreviation, info.name):
                continue
        if status and event.status != status:
            continue
        events.append(event)
    return events


async def get_event(client: AirtableClient, lookups: LookupCache, event_id: str) -> Optional[Event]:
    await lookups.ensure_all(client)
    try:
        record = await client.get_record(TABLES["events"], event_id)
    except RecordNotFound:
        return None
    return to_event(record, lookups)


# --- Teams ------------------------------------------------------------------

async def _get_charter(client: AirtableClient, record: Record) -> Optional[Record]:
    charter_id = first_linked_id(record.get("fields", {}).get("Charter"))
    if not charter_id:
        return None
    try:
        return await client.get_record(TABLES["charter"], charter_id)
    except DataServiceError:
        logger.exception("Error fetching charter %s", charter_id)
        return None


async def get_team(client: AirtableClient, lookups: LookupCache, team_id: str) -> Optional[Team]:
    await lookups.ensure(client, DIVISION)
    try:
        record = await client.get_record(TABLES["teams"], team_id)
    except RecordNotFound:
        return None
    school = await _get_charter(client, record)
    return to_team(record, lookups, school)


async def search_teams(client: AirtableClient, lookups: LookupCache, query: str = "") -> List[Team]:
    await lookups.ensure(client, DIVISION)
    records = await client.list_records(TABLES["teams"], max_records=SEARCH_SCAN_LIMIT)

    matching = [
        record for record in records
        if _matches(query, record.get("fields", {}).get("Team Name"), record.get("fields", {}).get("State"))
    ][:SEARCH_RESULT_LIMIT]

    schools = await asyncio.gather(*(_get_charter(client, record) for record in matching))
    return [to_team(record, lookups, school) for record, school in zip(matching, schools)]


async def get_team_members(client: AirtableClient, team_id: str) -> List[TeamMember]:
    # Linked fields can't be filtered reliably server-side
    records = await client.list_records(TABLES["students"])
    return [
        to_member(record, team_id)
        for record in records
        if team_id in linked_ids(record.get("fields", {}).get("Team"))
    ]


# --- Schools ----------------------------------------------------------------

async def get_school(client: AirtableClient, lookups: LookupCache, school_id: str) -> Optional[School]:
    await lookups.ensure(client, STATE)
    try:
        record = await client.get_record(TABLES["charter"], school_id)
    except RecordNotFound:
        return None
    return to_school(record, lookups)


async def search_schools(client: AirtableClient, lookups: LookupCache, query: str = "") -> List[School]:
    await lookups.ensure(client, STATE)
    records = await client.list_records(TABLES["charter"], sort=[("Charter Name", "asc")])
    schools = [to_school(record, lookups) for record in records]
    return [school for school in schools if _matches(query, school.name, school.city, school.state)]


# --- Students ---------------------------------------------------------------

async def search_students(client: AirtableClient, query: str = "") -> List[TeamMember]:
    records = await client.list_records(TABLES["students"], sort=[("Member Name", "asc")])
    members = [to_member(record) for record in records]
    return [member for member in members if _matches(query, member.name, member.email, member.role)]


# --- Stats ------------------------------------------------------------------

async def get_stats(client: AirtableClient) -> Stats:
    events, teams, charters = await asyncio.gather(
        client.list_records(TABLES["events"], fields=["Event Name"]),
        client.list_records(TABLES["teams"], fields=["State"]),
        client.list_records(TABLES["charter"], fields=["Charter Name"]),
    )
    states = {
        record.get("fields", {}).get("State")
        for record in teams
        if record.get("fields", {}).get("State")
    }
    return Stats(events=len(events), teams=len(teams), schools=len(charters), states=len(states))


def fields_for_team(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Data service fields for a new team."""
    fields: Dict[str, Any] = {"Team Name": payload["name"], "State": payload.get("state") or ""}
    if payload.get("coach"):
        fields["Advisor / Coach"] = payload["coach"]
    if payload.get("school_id"):
        fields["Charter"] = [payload["school_id"]]
    if payload.get("division_id"):
        fields["Division"] = [payload["division_id"]]
    return fields


def fields_for_event(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Data service fields for a new event."""
    fields: Dict[str, Any] = {"Event Name": payload["name"], "Event Date": payload["date"]}
    if payload.get("location"):
        fields["Location"] = payload["location"]
    if payload.get("description"):
        fields["Description"] = payload["description"]
    if payload.get("division_id"):
        fields["Division"] = [payload["division_id"]]
    if payload.get("state_id"):
        fields["State"] = [payload["state_id"]]
    if payload.get("category_ids"):
        fields["Category"] = list(payload["category_ids"])
    if payload.get("team_count") is not None:
        fields["Team Count"] = payload["team_count"]
    return fields
