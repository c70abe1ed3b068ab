import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from .. import config
from ..dependencies import AuthContext, require_permission
from ..errors import DataServiceError, RecordNotFound
from ..services.airtable import AirtableClient, get_airtable
from ..services.lookups import LookupCache, get_lookup_cache
from ..services.resolvers import (
    fields_for_team,
    get_school,
    get_team,
    get_team_members,
    search_teams,
)
from ..services.users import log_audit_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/teams", tags=["teams"])


class TeamCreate(BaseModel):
    """Schema for creating a team."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    school_id: Optional[str] = Field(None, alias="schoolId")
    division_id: Optional[str] = Field(None, alias="divisionId")
    coach: Optional[str] = None
    state: Optional[str] = None


@router.get("")
async def teams_list(
    q: str = "",
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        teams = await search_teams(client, lookups, q)
    except DataServiceError:
        logger.exception("Error fetching teams")
        raise HTTPException(status_code=500, detail="Failed to fetch teams")

    return {"success": True, "data": teams}


@router.post("")
async def create_team(
    team_data: TeamCreate,
    ctx: AuthContext = Depends(require_permission("teams:create")),
    client: AirtableClient = Depends(get_airtable)
):
    if not team_data.name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team name is required")

    try:
        record = await client.create_record(
            config.TABLES["teams"], fields_for_team(team_data.model_dump())
        )
    except DataServiceError:
        logger.exception("Error creating team")
        raise HTTPException(status_code=500, detail="Failed to create team")

    await log_audit_event(client, ctx.user_id, "team.created", "team", record["id"], {
        "name": team_data.name,
    })
    fields = record.get("fields", {})
    return {
        "success": True,
        "data": {
            "id": record["id"],
            "name": fields.get("Team Name"),
            "state": fields.get("State"),
        },
    }


@router.delete("")
async def delete_team(
    id: Optional[str] = None,
    ctx: AuthContext = Depends(require_permission("teams:delete")),
    client: AirtableClient = Depends(get_airtable)
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team ID is required")

    try:
        await client.delete_record(config.TABLES["teams"], id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except DataServiceError:
        logger.exception("Error deleting team %s", id)
        raise HTTPException(status_code=500, detail="Failed to delete team")

    await log_audit_event(client, ctx.user_id, "team.deleted", "team", id)
    return {"success": True, "message": "Team deleted successfully"}


@router.get("/{team_id}")
async def team_detail(
    team_id: str,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        team = await get_team(client, lookups, team_id)
    except DataServiceError:
        logger.exception("Error fetching team %s", team_id)
        raise HTTPException(status_code=500, detail="Failed to fetch team")

    if not team:
        raise HTTPException(status_code=404, detail="Team not found")

    # Members and school are extras; the team page still renders without them
    members = []
    try:
        members = await get_team_members(client, team_id)
    except DataServiceError:
        logger.exception("Error fetching members of team %s", team_id)

    school = None
    if team.school_id:
        try:
            school = await get_school(client, lookups, team.school_id)
        except DataServiceError:
            logger.exception("Error fetching school %s", team.school_id)

    return {
        "success": True,
        "data": {"team": team, "members": members, "school": school},
    }
