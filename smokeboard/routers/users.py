"""
User administration and self-service account linking.

The identity provider's public metadata is the source of truth for a
user's role, school and team; every change is mirrored into the Users
table and written to the audit log.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import AuthContext, require_auth, require_permission
from ..errors import DataServiceError, IdentityProviderError
from ..roles import PARENT, ROLES, STUDENT, TEACHER, is_valid_role
from ..services.airtable import AirtableClient, get_airtable
from ..services.clerk import ClerkClient, format_user, get_clerk, primary_email
from ..services.users import log_audit_event, update_user_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class RoleUpdate(BaseModel):
    # Accepts both schoolId and school_id
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[str] = None
    school_id: Optional[str] = Field(None, alias="schoolId")
    state_id: Optional[str] = Field(None, alias="stateId")


class SchoolLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    school_id: Optional[str] = Field(None, alias="schoolId")


class TeamLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: Optional[str] = Field(None, alias="teamId")


def _require_self(ctx: AuthContext, user_id: str):
    if ctx.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only link your own account"
        )


@router.get("")
async def users_list(
    q: str = "",
    limit: int = 50,
    offset: int = 0,
    ctx: AuthContext = Depends(require_permission("users:manage")),
    clerk: ClerkClient = Depends(get_clerk)
):
    try:
        users, total_count = await clerk.list_users(q, limit=limit, offset=offset)
    except IdentityProviderError:
        logger.exception("Error listing users")
        raise HTTPException(status_code=500, detail="Failed to fetch users")

    return {
        "success": True,
        "data": [format_user(user) for user in users],
        "total_count": total_count,
    }


@router.patch("/{user_id}/role")
async def update_role(
    user_id: str,
    update: RoleUpdate,
    ctx: AuthContext = Depends(require_permission("users:manage")),
    clerk: ClerkClient = Depends(get_clerk),
    client: AirtableClient = Depends(get_airtable)
):
    if update.role and not is_valid_role(update.role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role. Must be one of: {', '.join(ROLES)}"
        )

    try:
        user = await clerk.get_user(user_id)
        # Merge so unrelated metadata keys survive
        metadata = dict(user.get("public_metadata") or {})
        if update.role is not None:
            metadata["role"] = update.role
        if update.school_id is not None:
            metadata["schoolId"] = update.school_id
        if update.state_id is not None:
            metadata["stateId"] = update.state_id
        await clerk.update_public_metadata(user_id, metadata)

        if update.role:
            await update_user_role(
                client, user_id, update.role,
                school_id=update.school_id, state_id=update.state_id
            )
    except IdentityProviderError as exc:
        if exc.status_code == 404:
            raise HTTPException(status_code=404, detail="User not found")
        logger.exception("Error updating role for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to update user role")
    except DataServiceError:
        logger.exception("Error mirroring role for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to update user role")

    await log_audit_event(client, ctx.user_id, "role.assigned", "user", user_id, {
        "role": update.role,
        "target_email": primary_email(user),
    })

    return {
        "success": True,
        "data": {
            "user_id": user_id,
            "role": metadata.get("role"),
            "school_id": metadata.get("schoolId"),
            "state_id": metadata.get("stateId"),
        },
    }


@router.patch("/{user_id}/school")
async def link_school(
    user_id: str,
    link: SchoolLink,
    ctx: AuthContext = Depends(require_auth),
    clerk: ClerkClient = Depends(get_clerk),
    client: AirtableClient = Depends(get_airtable)
):
    """Teacher self-service: set their own school, once."""
    _require_self(ctx, user_id)
    if ctx.role != TEACHER:
        raise HTTPException(status_code=403, detail="Only teachers can self-link a school")
    if ctx.school_id:
        raise HTTPException(
            status_code=400,
            detail="School already linked. Contact an admin to change it."
        )
    if not link.school_id:
        raise HTTPException(status_code=400, detail="school_id is required")

    try:
        user = await clerk.get_user(user_id)
        metadata = dict(user.get("public_metadata") or {})
        metadata["schoolId"] = link.school_id
        await clerk.update_public_metadata(user_id, metadata)
        await update_user_role(client, user_id, TEACHER, school_id=link.school_id)
    except (IdentityProviderError, DataServiceError):
        logger.exception("Error linking school for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to link school")

    await log_audit_event(client, user_id, "school.self_linked", "school", link.school_id, {
        "email": primary_email(user),
    })
    return {"success": True, "data": {"user_id": user_id, "school_id": link.school_id}}


@router.patch("/{user_id}/team")
async def link_team(
    user_id: str,
    link: TeamLink,
    ctx: AuthContext = Depends(require_auth),
    clerk: ClerkClient = Depends(get_clerk),
    client: AirtableClient = Depends(get_airtable)
):
    """Student or parent self-service: set their own team, once."""
    _require_self(ctx, user_id)
    if ctx.role not in (STUDENT, PARENT):
        raise HTTPException(status_code=403, detail="Only students and parents can self-link a team")

    try:
        user = await clerk.get_user(user_id)
    except IdentityProviderError:
        logger.exception("Error fetching user %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to link team")

    metadata = dict(user.get("public_metadata") or {})
    # The token may predate a link made in another session, so check the provider
    if metadata.get("teamId"):
        raise HTTPException(
            status_code=400,
            detail="Team already linked. Contact an admin to change it."
        )
    if not link.team_id:
        raise HTTPException(status_code=400, detail="team_id is required")

    try:
        metadata["teamId"] = link.team_id
        await clerk.update_public_metadata(user_id, metadata)
        await update_user_role(client, user_id, ctx.role, team_id=link.team_id)
    except (IdentityProviderError, DataServiceError):
        logger.exception("Error linking team for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to link team")

    await log_audit_event(client, user_id, "team.self_linked", "team", link.team_id, {
        "email": primary_email(user),
    })
    return {"success": True, "data": {"user_id": user_id, "team_id": link.team_id}}
