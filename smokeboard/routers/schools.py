import logging
from fastapi import APIRouter, Depends, HTTPException

from ..errors import DataServiceError
from ..services.airtable import AirtableClient, get_airtable
from ..services.lookups import LookupCache, get_lookup_cache
from ..services.resolvers import get_school, get_team, search_schools

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schools", tags=["schools"])


@router.get("")
async def schools_list(
    q: str = "",
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        schools = await search_schools(client, lookups, q)
    except DataServiceError:
        logger.exception("Error fetching schools")
        raise HTTPException(status_code=500, detail="Failed to fetch schools")

    return {"success": True, "data": schools}


@router.get("/{school_id}")
async def school_detail(
    school_id: str,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    try:
        school = await get_school(client, lookups, school_id)
    except DataServiceError:
        logger.exception("Error fetching school %s", school_id)
        raise HTTPException(status_code=500, detail="Failed to fetch school")

    if not school:
        raise HTTPException(status_code=404, detail="School not found")

    teams = []
    for team_id in school.team_ids:
        try:
            team = await get_team(client, lookups, team_id)
        except DataServiceError:
            logger.exception("Error fetching team %s", team_id)
            continue
        if team:
            teams.append(team)

    return {"success": True, "data": {"school": school, "teams": teams}}
