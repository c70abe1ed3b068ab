"""
Mirror of identity provider users in the data service's Users table,
plus the admin audit log.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .. import config
from ..errors import DataServiceError
from .airtable import AirtableClient, Record

logger = logging.getLogger(__name__)

USERS = config.TABLES["users"]
AUDIT_LOG = config.TABLES["audit_log"]

ACTIVE = "Active"
SUSPENDED = "Suspended"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


async def find_user(client: AirtableClient, clerk_id: str) -> Optional[Record]:
    records = await client.list_records(
        USERS, formula=f"{{Clerk ID}} = '{_escape(clerk_id)}'", max_records=1
    )
    return records[0] if records else None


async def create_user(
    client: AirtableClient, clerk_id: str, email: str, first_name: str = "", last_name: str = ""
) -> Record:
    return await client.create_record(USERS, {
        "Clerk ID": clerk_id,
        "Email": email,
        "First Name": first_name,
        "Last Name": last_name,
        "Status": ACTIVE,
    })


async def update_user(
    client: AirtableClient,
    clerk_id: str,
    email: str,
    first_name: str = "",
    last_name: str = "",
) -> Record:
    """Update profile fields, creating the row if the created webhook was missed."""
    existing = await find_user(client, clerk_id)
    if existing is None:
        return await create_user(client, clerk_id, email, first_name, last_name)
    return await client.update_record(USERS, existing["id"], {
        "Email": email,
        "First Name": first_name,
        "Last Name": last_name,
    })


async def suspend_user(client: AirtableClient, clerk_id: str) -> Optional[Record]:
    existing = await find_user(client, clerk_id)
    if existing is None:
        logger.warning("No mirrored user for %s; nothing to suspend", clerk_id)
        return None
    return await client.update_record(USERS, existing["id"], {"Status": SUSPENDED})


async def update_user_role(
    client: AirtableClient,
    clerk_id: str,
    role: Optional[str],
    school_id: Optional[str] = None,
    state_id: Optional[str] = None,
    team_id: Optional[str] = None,
) -> Record:
    fields: Dict[str, Any] = {}
    if role:
        fields["Role"] = role
    if school_id:
        fields["Charter"] = [school_id]
    if state_id:
        fields["State"] = [state_id]
    if team_id:
        fields["Team"] = [team_id]

    existing = await find_user(client, clerk_id)
    if existing is None:
        fields.update({"Clerk ID": clerk_id, "Status": ACTIVE})
        return await client.create_record(USERS, fields)
    return await client.update_record(USERS, existing["id"], fields)


async def log_audit_event(
    client: AirtableClient,
    actor_id: str,
    action: str,
    target_type: str,
    target_id: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Best effort: a failed audit write is logged, never raised."""
    try:
        await client.create_record(AUDIT_LOG, {
            "Actor": actor_id,
            "Action": action,
            "Target Type": target_type,
            "Target ID": target_id,
            "Details": json.dumps(details or {}, default=str),
            "Timestamp": datetime.now(timezone.utc).isoformat(),
        })
    except DataServiceError:
        logger.exception("Failed to write audit event %s for %s", action, target_id)
