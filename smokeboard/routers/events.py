import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from .. import config
from ..dependencies import AuthContext, require_permission
from ..errors import DataServiceError, RecordNotFound
from ..services.airtable import AirtableClient, get_airtable
from ..services.lookups import LookupCache, get_lookup_cache
from ..services.resolvers import fields_for_event, get_event, get_events, to_event
from ..services.users import log_audit_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


class EventCreate(BaseModel):
    """Schema for creating an event. name and date are checked by hand so a miss is a 400."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    division_id: Optional[str] = Field(None, alias="divisionId")
    state_id: Optional[str] = Field(None, alias="stateId")
    category_ids: List[str] = Field(default_factory=list, alias="categoryIds")
    team_count: Optional[int] = Field(None, alias="teamCount")


@router.get("")
async def list_events(
    status: Optional[str] = None,
    division: Optional[str] = None,
    state: Optional[str] = None,
    limit: Optional[int] = None,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        events = await get_events(
            client, lookups, status=status, division=division, state=state, limit=limit
        )
    except DataServiceError:
        logger.exception("Error fetching events")
        raise HTTPException(status_code=500, detail="Failed to fetch events")

    return {"success": True, "data": events}


@router.post("")
async def create_event(
    event_data: EventCreate,
    ctx: AuthContext = Depends(require_permission("events:create")),
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    if not event_data.name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event name is required")
    if not event_data.date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event date is required")

    try:
        record = await client.create_record(
            config.TABLES["events"], fields_for_event(event_data.model_dump())
        )
        await lookups.ensure_all(client)
    except DataServiceError:
        logger.exception("Error creating event")
        raise HTTPException(status_code=500, detail="Failed to create event")

    await log_audit_event(client, ctx.user_id, "event.created", "event", record["id"], {
        "name": event_data.name,
    })
    return {"success": True, "data": to_event(record, lookups)}


@router.delete("")
async def delete_event(
    id: Optional[str] = None,
    ctx: AuthContext = Depends(require_permission("events:delete")),
    client: AirtableClient = Depends(get_airtable)
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event ID is required")

    try:
        await client.delete_record(config.TABLES["events"], id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Event not found")
    except DataServiceError:
        logger.exception("Error deleting event %s", id)
        raise HTTPException(status_code=500, detail="Failed to delete event")

    await log_audit_event(client, ctx.user_id, "event.deleted", "event", id)
    return {"success": True, "message": "Event deleted successfully"}


@router.get("/{event_id}")
async def event_detail(
    event_id: str,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        event = await get_event(client, lookups, event_id)
    except DataServiceError:
        logger.exception("Error fetching event %s", event_id)
        raise HTTPException(status_code=500, detail="Failed to fetch event")

    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    return {"success": True, "data": event}
