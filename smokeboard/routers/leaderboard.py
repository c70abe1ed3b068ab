import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from .. import config
from ..errors import DataServiceError, RecordNotFound
from ..services.airtable import AirtableClient, get_airtable
from ..services.leaderboard import compute_leaderboard
from ..services.lookups import LookupCache, get_lookup_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("")
async def leaderboard_api(
    event_id: Optional[str] = Query(None, alias="eventId"),
    category: str = config.OVERALL_CATEGORY,
    client: AirtableClient = Depends(get_airtable),
    lookups: LookupCache = Depends(get_lookup_cache)
):
    """Ranked teams for one event, optionally for a single category."""
    if not event_id:
        raise HTTPException(status_code=400, detail="Event ID is required")

    try:
        result = await compute_leaderboard(client, lookups, event_id, category or config.OVERALL_CATEGORY)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Event not found")
    except DataServiceError:
        logger.exception("Error computing leaderboard for %s", event_id)
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")

    return {"success": True, "data": result.entries, "skipped": result.skipped}
