"""
In-memory cache for the three small reference tables: divisions,
categories and states.

Each kind is fetched in full the first time it is needed and kept for the
lifetime of the cache object. There is no TTL; ``reset()`` (or a process
restart) is the only invalidation. A kind's map is installed only after
its whole table was fetched, so a failed load leaves nothing behind and
the next call retries.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Union

from .. import config
from ..models import StateInfo
from .airtable import AirtableClient

logger = logging.getLogger(__name__)

DIVISION = "division"
CATEGORY = "category"
STATE = "state"

KINDS = {
    DIVISION: (config.TABLES["divisions"], "Division Name"),
    CATEGORY: (config.TABLES["categories"], "Category Name"),
    STATE: (config.TABLES["states"], "State Name"),
}

Label = Union[str, StateInfo]


class LookupCache:
    def __init__(self):
        self._maps: Dict[str, Dict[str, Label]] = {}

    def is_loaded(self, kind: str) -> bool:
        return kind in self._maps

    async def ensure(self, client: AirtableClient, kind: str) -> None:
        if kind in self._maps:
            return
        table, label_field = KINDS[kind]

        records = await client.list_records(table)
        loaded: Dict[str, Label] = {}
        for record in records:
            fields = record.get("fields", {})
            if kind == STATE:
                loaded[record["id"]] = StateInfo(
                    name=fields.get(label_field) or "",
                    abbreviation=fields.get("Abbreviation") or "",
                )
            else:
                label = fields.get(label_field)
                if label:
                    loaded[record["id"]] = label

        # Two requests racing here both install a full map; last one wins
        self._maps[kind] = loaded
        logger.info("Loaded %d %s lookups", len(loaded), kind)

    async def ensure_all(self, client: AirtableClient) -> None:
        await asyncio.gather(*(self.ensure(client, kind) for kind in KINDS))

    def resolve(self, kind: str, record_id: Optional[str]) -> Optional[Label]:
        if not record_id:
            return None
        return self._maps.get(kind, {}).get(record_id)

    def resolve_many(self, kind: str, record_ids: List[str]) -> List[Label]:
        resolved = (self.resolve(kind, record_id) for record_id in record_ids)
        return [label for label in resolved if label]

    def find_id(self, kind: str, label: str) -> Optional[str]:
        """Reverse lookup, used when the caller only knows the label."""
        for record_id, value in self._maps.get(kind, {}).items():
            if isinstance(value, StateInfo):
                if label in (value.name, value.abbreviation):
                    return record_id
            elif value == label:
                return record_id
        return None

    def labels(self, kind: str) -> List[Label]:
        return list(self._maps.get(kind, {}).values())

    def reset(self) -> None:
        self._maps.clear()


_cache = LookupCache()


def get_lookup_cache() -> LookupCache:
    """Dependency returning the process-wide lookup cache."""
    return _cache
