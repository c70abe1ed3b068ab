import asyncio

import httpx
import pytest

from conftest import record
from smokeboard.errors import DataServiceError, DataServiceNotConfigured, RecordNotFound
from smokeboard.services.airtable import AirtableClient


def test_list_follows_pagination(airtable, data_client):
    airtable.add("Turn-Ins", *[record(f"ti{i:03d}", Total_Score=i) for i in range(250)])

    records = asyncio.run(data_client.list_records("Turn-Ins"))

    assert len(records) == 250
    assert airtable.fetched("Turn-Ins") == 3


def test_list_respects_max_records(airtable, data_client):
    airtable.add("Teams", *[record(f"t{i:03d}") for i in range(150)])
    assert len(asyncio.run(data_client.list_records("Teams", max_records=120))) == 120


def test_table_names_are_escaped(airtable, data_client):
    asyncio.run(data_client.create_record("Audit Log", {"Action": "test"}))
    assert airtable.tables["Audit Log"][0]["fields"] == {"Action": "test"}


def test_crud_round_trip(airtable, data_client):
    created = asyncio.run(data_client.create_record("Teams", {"Team Name": "New"}))
    updated = asyncio.run(data_client.update_record("Teams", created["id"], {"State": "TX"}))

    assert updated["fields"] == {"Team Name": "New", "State": "TX"}
    assert asyncio.run(data_client.delete_record("Teams", created["id"])) is True
    assert airtable.tables["Teams"] == []


def test_missing_record_raises_not_found(airtable, data_client):
    with pytest.raises(RecordNotFound):
        asyncio.run(data_client.get_record("Teams", "recMissing"))


def test_server_errors_raise(airtable, data_client):
    airtable.fail("Events", 503)
    with pytest.raises(DataServiceError) as excinfo:
        asyncio.run(data_client.list_records("Events"))
    assert excinfo.value.status_code == 503


def test_missing_credentials_fail_on_first_use():
    client = AirtableClient(api_key="", base_id="appTest")
    with pytest.raises(DataServiceNotConfigured):
        asyncio.run(client.list_records("Events"))

    client = AirtableClient(api_key="key", base_id="")
    with pytest.raises(DataServiceNotConfigured):
        asyncio.run(client.get_record("Events", "evt1"))


def test_sends_bearer_token():
    seen = []

    def handler(request):
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"records": []})

    client = AirtableClient(api_key="key_abc", base_id="appX", transport=httpx.MockTransport(handler))
    asyncio.run(client.list_records("Events"))

    assert seen == ["Bearer key_abc"]
