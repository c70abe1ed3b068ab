import logging
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import AuthContext, require_permission
from ..errors import DataServiceError
from ..services.airtable import AirtableClient, get_airtable
from ..services.resolvers import search_students

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["students"])


@router.get("")
async def students_list(
    q: str = "",
    ctx: AuthContext = Depends(require_permission("users:view_all")),
    client: AirtableClient = Depends(get_airtable)
):
    """Admin only: list or search every student."""
    try:
        students = await search_students(client, q)
    except DataServiceError:
        logger.exception("Error fetching students")
        raise HTTPException(status_code=500, detail="Failed to fetch students")

    return {"success": True, "data": students}
