"""
Async client for the spreadsheet data service (Airtable REST API).

Records come back as plain dicts: {"id": ..., "createdTime": ..., "fields": {...}}.
Linked-record fields hold lists of foreign record ids; there is no
server-side join, so callers resolve links themselves.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from .. import config
from ..errors import DataServiceError, DataServiceNotConfigured, RecordNotFound

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

# Maximum page size the API accepts
PAGE_SIZE = 100


class AirtableClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_id: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else config.AIRTABLE_API_KEY
        self.base_id = base_id if base_id is not None else config.AIRTABLE_BASE_ID
        self.api_url = (api_url or config.AIRTABLE_API_URL).rstrip("/")
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        # Credentials are checked on first use so the app can start without them
        if not self.api_key:
            raise DataServiceNotConfigured(
                "AIRTABLE_API_KEY is not configured. Add it to your .env file."
            )
        if not self.base_id:
            raise DataServiceNotConfigured(
                "AIRTABLE_BASE_ID is not configured. Add it to your .env file."
            )
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=f"{self.api_url}/{self.base_id}",
                headers={"Authorization": f"Bearer {self.api_key}"},
                transport=self._transport,
            )
        return self._http

    async def _request(self, method: str, table: str, record_id: Optional[str] = None, **kwargs) -> Any:
        path = "/" + quote(table, safe="")
        if record_id:
            path += "/" + quote(record_id, safe="")

        try:
            response = await self._client().request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise DataServiceError(f"{method} {table} failed: {exc}") from exc

        if response.status_code == 404 and record_id:
            raise RecordNotFound(table, record_id)
        if response.status_code >= 400:
            raise DataServiceError(
                f"{method} {table} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def list_records(
        self,
        table: str,
        *,
        fields: Optional[Sequence[str]] = None,
        sort: Optional[Sequence[Tuple[str, str]]] = None,
        max_records: Optional[int] = None,
        formula: Optional[str] = None,
    ) -> List[Record]:
        """Fetch every record of a table, following offset pagination."""
        params: List[Tuple[str, Any]] = [("pageSize", PAGE_SIZE)]
        for name in fields or []:
            params.append(("fields[]", name))
        for i, (field, direction) in enumerate(sort or []):
            params.append((f"sort[{i}][field]", field))
            params.append((f"sort[{i}][direction]", direction))
        if max_records:
            params.append(("maxRecords", max_records))
        if formula:
            params.append(("filterByFormula", formula))

        records: List[Record] = []
        offset = None
        while True:
            page_params = list(params)
            if offset:
                page_params.append(("offset", offset))
            payload = await self._request("GET", table, params=page_params)
            records.extend(payload.get("records", []))

            offset = payload.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break

        if max_records:
            records = records[:max_records]
        logger.debug("Fetched %d records from %s", len(records), table)
        return records

    async def get_record(self, table: str, record_id: str) -> Record:
        return await self._request("GET", table, record_id)

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Record:
        return await self._request("POST", table, json={"fields": fields})

    async def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Record:
        """PATCH semantics: fields not mentioned are left untouched."""
        return await self._request("PATCH", table, record_id, json={"fields": fields})

    async def delete_record(self, table: str, record_id: str) -> bool:
        payload = await self._request("DELETE", table, record_id)
        return bool(payload.get("deleted", True))

    async def aclose(self):
        if self._http is not None:
            await self._http.aclose()
            self._http = None


_client: Optional[AirtableClient] = None


def get_airtable() -> AirtableClient:
    """Dependency returning the process-wide data service client."""
    global _client
    if _client is None:
        _client = AirtableClient()
    return _client
