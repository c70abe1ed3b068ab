import logging
from fastapi import APIRouter, Depends

from ..errors import DataServiceError
from ..models import Stats
from ..services.airtable import AirtableClient, get_airtable
from ..services.resolvers import get_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
async def stats_api(client: AirtableClient = Depends(get_airtable)):
    """Homepage counters. Never errors: a failed fetch reports zeros."""
    try:
        stats = await get_stats(client)
    except DataServiceError:
        logger.exception("Error fetching stats")
        return {"success": False, "error": "Failed to fetch stats", "data": Stats()}

    return {"success": True, "data": stats}
