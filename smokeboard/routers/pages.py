import logging
from datetime import timedelta
from typing import List, Optional
from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from .. import config
from ..config import TEMPLATES_DIR
from ..errors import DataServiceError
from ..models import Event, LeaderboardResult, Stats
from ..services.airtable import AirtableClient, get_airtable
from ..services.leaderboard import compute_leaderboard
from ..services.lookups import DIVISION, LookupCache, get_lookup_cache
from ..services.resolvers import get_event, get_events, get_stats
from ..services.status import COMPLETED, LIVE, UPCOMING, now_tz

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def sample_events() -> List[Event]:
    """Placeholder events for the homepage when the base has none to show."""
    today = now_tz().date()
    samples = [
        ("Texas State Championship", 0, "Fort Worth, TX", "HSBBQ", LIVE, 48,
         ["Brisket", "Ribs", "Chicken"]),
        ("Oklahoma Smoke Showdown", 7, "Oklahoma City, OK", "HSBBQ", UPCOMING, 32,
         ["Brisket", "Pork", "Chicken"]),
        ("Kansas City BBQ Classic", 14, "Kansas City, MO", "HSBBQ", UPCOMING, 56,
         ["Brisket", "Ribs", "Chicken", "Pork"]),
        ("Georgia Peach Pit Masters", 21, "Atlanta, GA", "MSBBQ", UPCOMING, 24,
         ["Chicken", "Ribs", "Pork"]),
        ("Lone Star Smoke Show", -7, "Austin, TX", "HSBBQ", COMPLETED, 40,
         ["Brisket", "Ribs", "Chicken"]),
    ]
    events = []
    for i, (name, offset, location, division, status, teams, categories) in enumerate(samples, start=1):
        city, _, state = location.partition(", ")
        events.append(Event(
            id=f"sample_{i}",
            name=name,
            date=(today + timedelta(days=offset)).isoformat(),
            location=location,
            city=city,
            state=state,
            division=division,
            status=status,
            registered_teams=teams,
            categories=categories,
        ))
    return events


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    events: List[Event] = []
    stats = Stats()
    try:
        events = await get_events(client, lookups)
        stats = await get_stats(client)
    except DataServiceError:
        logger.exception("Error loading homepage data")

    return templates.TemplateResponse(request, "home.html", {
        "events": events or sample_events(),
        "is_sample": not events,
        "stats": stats,
    })


@router.get("/events", response_class=HTMLResponse)
async def events_page(
    request: Request,
    q: str = "",
    status: Optional[str] = None,
    division: Optional[str] = None,
    state: Optional[str] = None,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    error = None
    events: List[Event] = []
    try:
        events = await get_events(client, lookups, status=status, division=division, state=state)
    except DataServiceError:
        logger.exception("Error loading events page")
        error = "Events are unavailable right now."

    query = q.strip().lower()
    if query:
        events = [
            event for event in events
            if query in event.name.lower() or query in event.city.lower() or query in event.state.lower()
        ]

    return templates.TemplateResponse(request, "events/list.html", {
        "events": events,
        "error": error,
        "divisions": lookups.labels(DIVISION) or [config.DEFAULT_DIVISION],
        "filters": {"q": q, "status": status, "division": division, "state": state},
    })


@router.get("/leaderboard/{event_id}", response_class=HTMLResponse)
async def leaderboard_page(
    request: Request,
    event_id: str,
    category: str = config.OVERALL_CATEGORY,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        event = await get_event(client, lookups, event_id)
    except DataServiceError:
        logger.exception("Error loading event %s", event_id)
        raise HTTPException(status_code=500, detail="Failed to fetch event")
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    try:
        result = await compute_leaderboard(client, lookups, event_id, category)
    except DataServiceError:
        logger.exception("Error loading leaderboard page for %s", event_id)
        result = LeaderboardResult()

    return templates.TemplateResponse(request, "leaderboard/event.html", {
        "event": event,
        "category": category,
        "categories": [config.OVERALL_CATEGORY] + event.categories,
        "entries": result.entries,
    })
