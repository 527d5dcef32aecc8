"""
Airtable record store mapping, bulk updates and prompt lookups.

The connector's transport is replaced by an in-memory Airtable so the
whole path (URL building, retries, error mapping, field mapping) runs
without network.

Guards against:
1. One failing record aborting a bulk status update
2. Publishing through the bulk action
3. Site listing leaking records without a usable numeric ID
4. Prompt columns written under inconsistent names
"""
import asyncio
import json
import re
from datetime import date
from urllib.parse import unquote

import pytest

from seodash.config import get_settings
from seodash.connectors.airtable_connector import AirtableConnector
from seodash.exceptions import InvalidStatusError, NotFoundError, RecordStoreError
from seodash.models.content import (
    ContentStatus,
    ContentType,
    EditorialContentCreate,
    EditorialContentUpdate,
    ImageSource,
)
from seodash.models.prompt import SystemPromptCreate
from seodash.services.record_store_service import RecordStoreService

DALLE_URL = "https://oaidalleapiprodscus.blob.core.windows.net/private/img-1.png"


def _run(coro):
    return asyncio.run(coro)


class FakeAirtable(AirtableConnector):
    """Serves one base from dicts, answering like the Airtable REST API."""

    BASE_ID = "appTEST"

    def __init__(self, tables=None):
        super().__init__(api_key="patTEST", base_id=self.BASE_ID, api_url="https://airtable.test/v0")
        self.tables = {
            name: {record["id"]: record for record in records}
            for name, records in (tables or {}).items()
        }
        self.failures = {}  # record id -> (status, body)
        self.calls = []
        self._created = 0

    async def _send(self, method, url, headers=None, params=None, json_body=None):
        self.request_count += 1
        self.calls.append({"method": method, "url": url, "params": params, "json": json_body})

        path = url.split(f"/{self.BASE_ID}/", 1)[1]
        parts = [unquote(part) for part in path.split("/")]
        table = self.tables.setdefault(parts[0], {})
        record_id = parts[1] if len(parts) > 1 else None

        if record_id in self.failures:
            return self.failures[record_id]

        if method == "GET" and record_id is None:
            formula = (params or {}).get("filterByFormula")
            records = [record for record in table.values() if self._matches(record, formula)]
            if (params or {}).get("maxRecords"):
                records = records[:params["maxRecords"]]
            return 200, json.dumps({"records": records})

        if method == "POST":
            self._created += 1
            record = {
                "id": f"recNEW{self._created}",
                "createdTime": "2025-03-01T10:00:00.000Z",
                "fields": {k: v for k, v in json_body["fields"].items() if v not in (None, [], "")},
            }
            table[record["id"]] = record
            return 200, json.dumps(record)

        if record_id not in table:
            return 404, json.dumps({"error": "NOT_FOUND"})

        record = table[record_id]
        if method == "GET":
            return 200, json.dumps(record)
        if method == "PATCH":
            for key, value in json_body["fields"].items():
                if value in (None, [], ""):
                    record["fields"].pop(key, None)
                else:
                    record["fields"][key] = value
            return 200, json.dumps(record)
        if method == "DELETE":
            del table[record_id]
            return 200, json.dumps({"id": record_id, "deleted": True})
        return 405, json.dumps({"error": "METHOD_NOT_ALLOWED"})

    @staticmethod
    def _matches(record, formula):
        if not formula:
            return True
        match = re.fullmatch(r"\{(\w+)\} = (\d+)", formula)
        if match is None:
            return True
        return str(record["fields"].get(match.group(1))) == match.group(2)


def _content_record(record_id, site_id=1, status="en attente", **extra):
    fields = {
        "ID_SITE": site_id,
        "type_contenu": "instagram",
        "contenu_text": f"Texte {record_id}",
        "statut": status,
        "date_de_publication": "2025-03-10",
    }
    fields.update(extra)
    return {"id": record_id, "createdTime": "2025-02-20T08:00:00.000Z", "fields": fields}


def _store(content=None, sites=None, prompts=None):
    settings = get_settings()
    connector = FakeAirtable({
        settings.airtable_content_table: content or [],
        settings.airtable_sites_table: sites or [],
        settings.airtable_prompts_table: prompts or [],
    })
    return RecordStoreService(connector=connector), connector


# ---------------------------------------------------------------------------
# Content reads
# ---------------------------------------------------------------------------

def test_list_content_resolves_images():
    store, _ = _store(content=[
        _content_record("rec1", image=[{"url": "https://dl.airtable.com/a.jpg"}], image_url=DALLE_URL),
        _content_record("rec2", image_url=f" {DALLE_URL} "),
        _content_record("rec3"),
    ])
    items = {item.id: item for item in _run(store.list_content())}

    assert items["rec1"].image_url == "https://dl.airtable.com/a.jpg"
    assert items["rec1"].image_source == ImageSource.UPLOAD
    assert items["rec2"].image_url == DALLE_URL
    assert items["rec2"].image_source == ImageSource.AI
    assert items["rec3"].has_image is False
    assert items["rec3"].image_source is None
    for item in items.values():
        assert item.has_image == (item.image_url is not None)


def test_list_content_skips_unreadable_records():
    bad_date = _content_record("rec2")
    bad_date["fields"]["date_de_publication"] = "demain"
    store, _ = _store(content=[_content_record("rec1"), bad_date, _content_record("rec3", site_id=None)])
    assert [item.id for item in _run(store.list_content())] == ["rec1"]


def test_list_content_by_site_sends_formula():
    store, connector = _store(content=[_content_record("rec1", site_id=1), _content_record("rec2", site_id=2)])
    items = _run(store.list_content(site_id=2))
    assert [item.id for item in items] == ["rec2"]
    assert connector.calls[0]["params"]["filterByFormula"] == "{ID_SITE} = 2"


def test_content_formula_for_date_range():
    formula = RecordStoreService._content_formula(3, date(2025, 3, 1), date(2025, 3, 31))
    assert formula == (
        "AND({ID_SITE} = 3, "
        "NOT(IS_BEFORE({date_de_publication}, '2025-03-01')), "
        "NOT(IS_AFTER({date_de_publication}, '2025-03-31')))"
    )
    assert RecordStoreService._content_formula() is None


def test_get_missing_content_is_not_found():
    store, _ = _store()
    with pytest.raises(NotFoundError):
        _run(store.get_content("recMISSING"))


# ---------------------------------------------------------------------------
# Content writes
# ---------------------------------------------------------------------------

def test_create_then_list_round_trip():
    store, _ = _store()
    created = _run(store.create_content(EditorialContentCreate(
        id_site=4,
        type_content=ContentType.BLOG,
        content_text="Nos conseils pour bien choisir un jouet",
        has_image=True,
        image_url=DALLE_URL,
        statut=ContentStatus.NEEDS_REVIEW,
        date_de_publication=date(2025, 4, 2),
    )))
    listed = _run(store.list_content(site_id=4))

    assert len(listed) == 1
    item = listed[0]
    assert item.id == created.id
    assert item.content_text == created.content_text
    assert item.type_content == "blog"
    assert item.statut == "à réviser"
    assert (item.has_image, item.image_url, item.image_source) == (
        created.has_image, created.image_url, created.image_source
    )


def test_create_maps_fields_for_airtable():
    store, connector = _store()
    _run(store.create_content(EditorialContentCreate(
        id_site=4,
        type_content=ContentType.TIKTOK,
        content_text="Script",
        has_image=True,
        image_url="/uploads/abc.png",
        date_de_publication=date(2025, 4, 2),
    )))
    fields = connector.calls[-1]["json"]["fields"]

    assert fields["ID_SITE"] == "4"
    assert fields["date_de_publication"] == "2025-04-02"
    assert fields["statut"] == "en attente"
    assert fields["image"] == [{"url": f"{store.public_base_url.rstrip('/')}/uploads/abc.png"}]
    assert "image_url" not in fields
    assert connector.calls[-1]["json"]["typecast"] is True


def test_update_without_image_clears_both_columns():
    store, connector = _store(content=[
        _content_record("rec1", image=[{"url": "https://dl.airtable.com/a.jpg"}], image_url=DALLE_URL),
    ])
    item = _run(store.update_content("rec1", EditorialContentUpdate(has_image=False, image_url=DALLE_URL)))

    assert item.has_image is False
    assert item.image_url is None
    fields = connector.calls[-1]["json"]["fields"]
    assert fields == {"image": [], "image_url": None}


def test_update_only_sends_present_fields():
    store, connector = _store(content=[_content_record("rec1")])
    item = _run(store.update_content("rec1", EditorialContentUpdate(content_text="Nouveau texte")))
    assert item.content_text == "Nouveau texte"
    assert connector.calls[-1]["json"]["fields"] == {"contenu_text": "Nouveau texte"}


def test_delete_content():
    store, connector = _store(content=[_content_record("rec1")])
    assert _run(store.delete_content("rec1")) is True
    assert connector.tables[store.content_table] == {}


# ---------------------------------------------------------------------------
# Bulk status update
# ---------------------------------------------------------------------------

def test_bulk_update_tolerates_missing_record():
    store, _ = _store(content=[_content_record(f"rec{i}") for i in range(1, 5)])
    ids = ["rec1", "rec2", "recGONE", "rec3", "rec4"]

    updated = _run(store.bulk_update_status(ids, "validé"))

    assert len(updated) == 4
    assert {item.id for item in updated} == {"rec1", "rec2", "rec3", "rec4"}
    assert all(item.statut == "validé" for item in updated)


def test_bulk_update_all_failing_returns_empty_list():
    store, connector = _store()
    connector.failures["recBAD"] = (422, json.dumps({"error": {"type": "INVALID_VALUE", "message": "bad"}}))
    ids = ["recA", "recB", "recC", "recD", "recBAD"]

    assert _run(store.bulk_update_status(ids, "à réviser")) == []


def test_bulk_update_rejects_publish_before_any_request():
    store, connector = _store(content=[_content_record("rec1")])

    with pytest.raises(InvalidStatusError):
        _run(store.bulk_update_status(["rec1"], "publié"))
    assert connector.request_count == 0


def test_bulk_update_runs_concurrently():
    store, connector = _store(content=[_content_record(f"rec{i}") for i in range(1, 4)])
    in_flight = {"now": 0, "max": 0}
    original = connector._send

    async def slow_send(*args, **kwargs):
        in_flight["now"] += 1
        in_flight["max"] = max(in_flight["max"], in_flight["now"])
        await asyncio.sleep(0.01)
        in_flight["now"] -= 1
        return await original(*args, **kwargs)

    connector._send = slow_send
    _run(store.bulk_update_status(["rec1", "rec2", "rec3"], "validé"))
    assert in_flight["max"] == 3


# ---------------------------------------------------------------------------
# Sites
# ---------------------------------------------------------------------------

def _site(record_id, site_id, name="Site", **extra):
    fields = {"ID_SITE": site_id, "Nom_site": name, "url": f"https://{record_id}.example.com"}
    fields.update(extra)
    return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": fields}


def test_list_sites_filters_sorts_and_cleans():
    store, _ = _store(sites=[
        _site("recA", "3", name="Analyse SEO - www.oh-les-kids.fr", analyse_seo='{"score": 52}'),
        _site("recB", 10, name="Boutique"),
        _site("recC", "abc"),
        _site("recD", -1),
        _site("recE", 5, analyse_seo="{not json"),
        _site("recF", 2.5),
    ])
    sites = _run(store.list_sites())

    assert [site.id for site in sites] == [10, 5, 3]
    assert sites[2].name == "www.oh-les-kids.fr"
    assert sites[2].seo_analysis == {"score": 52}
    assert sites[1].seo_analysis is None
    assert sites[0].record_id == "recB"


def test_social_credentials_default_to_empty_tokens():
    store, _ = _store(sites=[_site("recA", 3)])
    assert _run(store.get_social_credentials(3)) == {"access_tokens": {}}


def test_social_credentials_round_trip():
    store, _ = _store(sites=[_site("recA", 3)])
    _run(store.update_social_credentials(3, {"access_tokens": {"instagram": "tok"}}))
    assert _run(store.get_social_credentials(3)) == {"access_tokens": {"instagram": "tok"}}


def test_social_program_update_and_read():
    store, _ = _store(sites=[_site("recA", 3)])
    document = json.dumps({"instagram": {"frequency": 3}})
    assert _run(store.update_social_program(3, document)) == {"instagram": {"frequency": 3}}
    assert _run(store.get_social_program(3)) == {"instagram": {"frequency": 3}}


def test_unknown_site_is_not_found():
    store, _ = _store(sites=[_site("recA", 3)])
    with pytest.raises(NotFoundError):
        _run(store.get_social_program(99))
    with pytest.raises(NotFoundError):
        _run(store.get_social_credentials(99))


def test_site_with_id_column_is_found():
    record = {"id": "recA", "fields": {"ID": 7, "Nom_site": "Boutique", "url": "https://a.fr"}}
    store, connector = _store(sites=[record])

    assert [site.id for site in _run(store.list_sites())] == [7]
    assert _run(store.get_social_credentials(7)) == {"access_tokens": {}}
    assert _run(store.delete_site(7)) is True
    assert connector.tables[get_settings().airtable_sites_table] == {}


def test_non_text_social_program_does_not_break_listing():
    store, _ = _store(sites=[_site("recA", 3, programme_rs=42), _site("recB", 4, programme_rs=None)])
    sites = {site.id: site for site in _run(store.list_sites())}

    assert sites[3].programme_rs == "42"
    assert sites[4].programme_rs is None


# ---------------------------------------------------------------------------
# System prompts
# ---------------------------------------------------------------------------

def test_prompt_reads_accept_naming_variants():
    store, _ = _store(prompts=[
        {"id": "recP1", "fields": {"Prompt System": "Ancien prompt", "Name": "v1", "Active": False}},
        {"id": "recP2", "fields": {"prompt_system": "Prompt actif", "nom": "v2", "actif": True,
                                   "structure_sortie": '{"title": ""}'}},
    ])
    prompts = {prompt.id: prompt for prompt in _run(store.list_prompts())}

    assert prompts["recP1"].prompt_system == "Ancien prompt"
    assert prompts["recP1"].nom == "v1"
    assert prompts["recP2"].actif is True

    active = _run(store.get_active_prompt())
    assert active.id == "recP2"
    assert active.structure_sortie == '{"title": ""}'


def test_no_active_prompt_is_none():
    store, _ = _store(prompts=[{"id": "recP1", "fields": {"promptSystem": "x", "active": False}}])
    assert _run(store.get_active_prompt()) is None


def test_first_active_prompt_wins():
    store, _ = _store(prompts=[
        {"id": "recP1", "fields": {"prompt_system": "un", "actif": True}},
        {"id": "recP2", "fields": {"prompt_system": "deux", "Active": True}},
    ])
    assert _run(store.get_active_prompt()).id == "recP1"


def test_prompt_writes_use_lowercase_french_columns():
    store, connector = _store()
    prompt = _run(store.create_prompt(SystemPromptCreate(
        prompt_system="Tu es rédacteur", nom="Rédaction", description="Prompt principal", actif=True,
    )))
    fields = connector.calls[-1]["json"]["fields"]

    assert set(fields) == {"prompt_system", "nom", "description", "actif"}
    assert prompt.nom == "Rédaction"
    assert prompt.actif is True


# ---------------------------------------------------------------------------
# Connector behaviour
# ---------------------------------------------------------------------------

def test_transient_error_is_retried(monkeypatch):
    monkeypatch.setattr("seodash.utils.retry.calculate_backoff", lambda *args, **kwargs: 0)
    store, connector = _store(content=[_content_record("rec1")])
    original = connector._send
    answers = [(503, "Service Unavailable")]

    async def flaky_send(*args, **kwargs):
        if answers:
            connector.request_count += 1
            return answers.pop(0)
        return await original(*args, **kwargs)

    connector._send = flaky_send
    item = _run(store.get_content("rec1"))
    assert item.id == "rec1"
    assert connector.request_count == 2


def test_list_records_follows_pagination():
    connector = FakeAirtable()
    pages = [
        {"records": [{"id": "rec1", "fields": {}}], "offset": "itr1"},
        {"records": [{"id": "rec2", "fields": {}}]},
    ]
    seen_offsets = []

    async def paged_send(method, url, headers=None, params=None, json_body=None):
        seen_offsets.append(params.get("offset"))
        return 200, json.dumps(pages[len(seen_offsets) - 1])

    connector._send = paged_send
    records = _run(connector.list_records("content", sort=[("date_de_publication", "asc")]))

    assert [record["id"] for record in records] == ["rec1", "rec2"]
    assert seen_offsets == [None, "itr1"]


def test_create_is_not_retried_after_timeout(monkeypatch):
    monkeypatch.setattr("seodash.utils.retry.calculate_backoff", lambda *args, **kwargs: 0)
    store, connector = _store()
    original = connector._send

    async def lost_reply_send(method, url, headers=None, params=None, json_body=None):
        await original(method, url, headers=headers, params=params, json_body=json_body)
        if method == "POST":
            raise asyncio.TimeoutError()
        return 200, "{}"

    connector._send = lost_reply_send
    with pytest.raises(RecordStoreError):
        _run(store.create_content(EditorialContentCreate(
            id_site=1, type_content=ContentType.BLOG, content_text="Texte", date_de_publication=date(2025, 3, 10),
        )))

    assert [call["method"] for call in connector.calls] == ["POST"]
