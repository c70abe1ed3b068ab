"""
Identity provider (Clerk) backend API client and webhook verification.

Roles, school and team links are kept in each user's public metadata;
the session token exposes them through a ``metadata`` custom claim.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx
from svix.webhooks import Webhook, WebhookVerificationError

from .. import config
from ..errors import IdentityProviderError
from ..roles import ROLE_LABELS

logger = logging.getLogger(__name__)


def format_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a provider user into what the admin screens need."""
    metadata = user.get("public_metadata") or {}
    return {
        "id": user.get("id"),
        "email": primary_email(user),
        "first_name": user.get("first_name") or "",
        "last_name": user.get("last_name") or "",
        "image_url": user.get("image_url"),
        "role": metadata.get("role"),
        "role_label": ROLE_LABELS.get(metadata.get("role"), ""),
        "school_id": metadata.get("schoolId"),
        "state_id": metadata.get("stateId"),
        "team_id": metadata.get("teamId"),
        "created_at": user.get("created_at"),
        "last_sign_in_at": user.get("last_sign_in_at"),
    }


def primary_email(user: Dict[str, Any]) -> str:
    emails = user.get("email_addresses") or []
    return emails[0].get("email_address", "") if emails else ""


class ClerkClient:
    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else config.CLERK_SECRET_KEY
        self.api_url = (api_url or config.CLERK_API_URL).rstrip("/")
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if not self.secret_key:
            raise IdentityProviderError("CLERK_SECRET_KEY is not configured")
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.api_url,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                transport=self._transport,
            )
        return self._http

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client().request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise IdentityProviderError(
                f"{method} {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def list_users(
        self, query: str = "", limit: int = 50, offset: int = 0
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of users plus the total count for the same query."""
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if query:
            params["query"] = query
        else:
            params["order_by"] = "-created_at"
        count_params = {"query": query} if query else {}

        users = await self._request("GET", "/users", params=params)
        count = await self._request("GET", "/users/count", params=count_params)
        return users, count.get("total_count", len(users))

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}")

    async def update_public_metadata(self, user_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Replace public metadata; callers pass the already-merged dict."""
        return await self._request(
            "PATCH", f"/users/{user_id}/metadata", json={"public_metadata": metadata}
        )

    async def aclose(self):
        if self._http is not None:
            await self._http.aclose()
            self._http = None


_client: Optional[ClerkClient] = None


def get_clerk() -> ClerkClient:
    """Dependency returning the process-wide identity provider client."""
    global _client
    if _client is None:
        _client = ClerkClient()
    return _client


def verify_webhook(secret: str, headers: Mapping[str, str], body: bytes) -> Dict[str, Any]:
    """
    Check the svix-* headers against the raw body and return the decoded event.

    Any failure, including a malformed secret or a body that is not a JSON
    object, surfaces as svix's WebhookVerificationError.
    """
    try:
        event = Webhook(secret).verify(body, dict(headers))
    except ValueError as exc:
        # bad base64 in the secret or signature, or an undecodable body
        raise WebhookVerificationError(str(exc)) from exc
    if not isinstance(event, dict):
        raise WebhookVerificationError("Webhook payload is not an object")
    return event
