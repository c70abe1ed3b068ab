import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from smokeboard.dependencies import AuthContext, get_auth_context
from smokeboard.services.airtable import AirtableClient, get_airtable
from smokeboard.services.clerk import ClerkClient, get_clerk
from smokeboard.services.lookups import LookupCache, get_lookup_cache


def record(record_id: str, **fields) -> Dict[str, Any]:
    """Build a raw record; keyword names use underscores for spaces."""
    return {
        "id": record_id,
        "createdTime": "2025-01-01T00:00:00.000Z",
        "fields": {name.replace("_", " "): value for name, value in fields.items()},
    }


class FakeAirtable:
    """In-memory stand-in for the data service, served over httpx.MockTransport."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[httpx.Request] = []
        self.failing_tables: Dict[str, int] = {}
        self._next_id = 1

    def add(self, table: str, *records):
        self.tables.setdefault(table, []).extend(records)

    def fail(self, table: str, status_code: int = 500):
        self.failing_tables[table] = status_code

    def fetched(self, table: str) -> int:
        return sum(1 for r in self.requests if self._split(r)[0] == table and r.method == "GET")

    def _split(self, request: httpx.Request):
        # /v0/<base>/<table>[/<id>]
        parts = request.url.path.split("/")[3:]
        table = unquote(parts[0])
        record_id = unquote(parts[1]) if len(parts) > 1 else None
        return table, record_id

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table, record_id = self._split(request)
        if table in self.failing_tables:
            return httpx.Response(self.failing_tables[table], json={"error": "boom"})
        rows = self.tables.setdefault(table, [])

        if request.method == "GET" and record_id is None:
            return self._list(rows, request)

        if request.method == "POST":
            fields = json.loads(request.content)["fields"]
            new = {"id": f"rec{self._next_id:04d}", "createdTime": "2025-01-01T00:00:00.000Z", "fields": fields}
            self._next_id += 1
            rows.append(new)
            return httpx.Response(200, json=new)

        existing = next((row for row in rows if row["id"] == record_id), None)
        if existing is None:
            return httpx.Response(404, json={"error": "NOT_FOUND"})
        if request.method == "GET":
            return httpx.Response(200, json=existing)
        if request.method == "PATCH":
            existing["fields"].update(json.loads(request.content)["fields"])
            return httpx.Response(200, json=existing)
        if request.method == "DELETE":
            rows.remove(existing)
            return httpx.Response(200, json={"deleted": True, "id": record_id})
        return httpx.Response(405)

    def _list(self, rows, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        rows = list(rows)

        formula = params.get("filterByFormula")
        if formula:
            match = re.match(r"\{(.+)\} = '(.*)'", formula)
            if match:
                field, value = match.groups()
                rows = [row for row in rows if row["fields"].get(field) == value]

        sort_field = params.get("sort[0][field]")
        if sort_field:
            rows.sort(
                key=lambda row: row["fields"].get(sort_field) or "",
                reverse=params.get("sort[0][direction]") == "desc",
            )
        if params.get("maxRecords"):
            rows = rows[:int(params["maxRecords"])]

        start = int(params.get("offset", 0))
        size = int(params.get("pageSize", 100))
        page = rows[start:start + size]
        payload: Dict[str, Any] = {"records": page}
        if start + size < len(rows):
            payload["offset"] = str(start + size)
        return httpx.Response(200, json=payload)


class FakeClerk:
    """In-memory identity provider backend API."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}

    def add_user(self, user_id: str, email: str = "", metadata: Optional[Dict[str, Any]] = None, **extra):
        self.users[user_id] = {
            "id": user_id,
            "email_addresses": [{"email_address": email}] if email else [],
            "first_name": extra.get("first_name", ""),
            "last_name": extra.get("last_name", ""),
            "image_url": None,
            "public_metadata": dict(metadata or {}),
            "created_at": 1700000000000,
            "last_sign_in_at": None,
        }
        return self.users[user_id]

    def handler(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.split("/")[2:]  # drop "", "v1"
        if parts == ["users"]:
            query = request.url.params.get("query", "")
            users = [u for u in self.users.values() if query in json.dumps(u)]
            limit = int(request.url.params.get("limit", 10))
            offset = int(request.url.params.get("offset", 0))
            return httpx.Response(200, json=users[offset:offset + limit])
        if parts == ["users", "count"]:
            query = request.url.params.get("query", "")
            users = [u for u in self.users.values() if query in json.dumps(u)]
            return httpx.Response(200, json={"object": "total_count", "total_count": len(users)})

        user = self.users.get(parts[1])
        if user is None:
            return httpx.Response(404, json={"errors": [{"code": "resource_not_found"}]})
        if request.method == "PATCH" and parts[2:] == ["metadata"]:
            user["public_metadata"] = json.loads(request.content)["public_metadata"]
        return httpx.Response(200, json=user)


@pytest.fixture(name="airtable")
def airtable_fixture():
    return FakeAirtable()


@pytest.fixture(name="clerk")
def clerk_fixture():
    return FakeClerk()


@pytest.fixture(name="data_client")
def data_client_fixture(airtable: FakeAirtable):
    return AirtableClient(api_key="key_test", base_id="appTest", transport=httpx.MockTransport(airtable.handler))


@pytest.fixture(name="lookups")
def lookups_fixture():
    return LookupCache()


@pytest.fixture(name="client")
def client_fixture(data_client: AirtableClient, lookups: LookupCache, clerk: FakeClerk):
    clerk_client = ClerkClient(secret_key="sk_test", transport=httpx.MockTransport(clerk.handler))

    app.dependency_overrides[get_airtable] = lambda: data_client
    app.dependency_overrides[get_lookup_cache] = lambda: lookups
    app.dependency_overrides[get_clerk] = lambda: clerk_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="login_as")
def login_as_fixture():
    """Make subsequent requests carry the given auth context."""

    def login(role: Optional[str], user_id: str = "user_1", **metadata) -> AuthContext:
        ctx = AuthContext(user_id=user_id, role=role, **metadata)
        app.dependency_overrides[get_auth_context] = lambda: ctx
        return ctx

    return login


@pytest.fixture(name="seeded")
def seeded_fixture(airtable: FakeAirtable):
    """A small base: one event with three teams and a handful of turn-ins."""
    airtable.add("Divisions", record("divHS", Division_Name="HSBBQ"), record("divMS", Division_Name="MSBBQ"))
    airtable.add(
        "Categories",
        record("catBrisket", Category_Name="Brisket"),
        record("catChicken", Category_Name="Chicken"),
    )
    airtable.add(
        "States",
        record("stTX", State_Name="Texas", Abbreviation="TX"),
        record("stOK", State_Name="Oklahoma", Abbreviation="OK"),
    )
    airtable.add(
        "Charter",
        record("schA", Charter_Name="Austin High", City="Austin", State=["stTX"], County="Travis",
               Teams=["teamA", "teamB"]),
    )
    airtable.add(
        "Teams",
        record("teamA", Team_Name="Smoke Signals", Division=["divHS"], Charter=["schA"], State="TX"),
        record("teamB", Team_Name="Pit Crew", Division=["divHS"], Charter=["schA"], State="TX"),
        record("teamC", Team_Name="Brisket Bandits", Division=["divMS"], State="OK"),
    )
    airtable.add(
        "Events",
        record("evt1", Event_Name="Texas State Championship", Event_Date="2025-06-15",
               Location="Fort Worth, TX", Division=["divHS"], State=["stTX"],
               Category=["catBrisket", "catChicken"], Teams=["teamA", "teamB", "teamC"], Team_Count=3),
        record("evt2", Event_Name="Oklahoma Smoke Showdown", Event_Date="2025-07-01",
               Location="Oklahoma City, OK", Division=["divMS"], State=["stOK"]),
    )
    airtable.add(
        "Turn-Ins",
        record("ti1", Team=["teamA"], Event=["evt1"], Category=["catBrisket"], Total_Score=80),
        record("ti2", Team=["teamA"], Event=["evt1"], Category=["catBrisket"], Total_Score=90),
        record("ti3", Team=["teamB"], Event=["evt1"], Category=["catChicken"], Total_Score=95),
        record("ti4", Team=["teamC"], Event=["evt2"], Category=["catBrisket"], Total_Score=99),
    )
    airtable.add(
        "Students",
        record("stu1", Member_Name="Jordan Lee", Role="Pitmaster", Email="jordan@example.com", Team=["teamA"]),
        record("stu2", Member_Name="Sam Ortiz", Role="Prep", Team=["teamB"]),
    )
    return airtable
