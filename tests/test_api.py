"""
HTTP API behaviour through FastAPI's TestClient.

Every external system is replaced with a fake via dependency overrides.

Guards against:
1. Website creation failing because the first analysis failed
2. Refresh appending analyses instead of replacing
3. Validation errors answered as 422/500 instead of 400
4. Webhook activation problems shown as generic errors
"""
import random

import pytest
from fastapi.testclient import TestClient

from seodash.api import deps
from seodash.exceptions import UpstreamError, WebhookError
from seodash.main import app
from seodash.models.generation import GeneratedArticle, SeoAiAnalysis, SeoAiRecommendation
from seodash.services.seo_normalizer import normalize_webhook_payload
from seodash.services.storage import MemoryStorage
from seodash.services.upload_service import UploadService

WEBHOOK_URL = "https://n8n.example.com/webhook/seo-audit"


def _analysis(mobile_lcp, desktop_lcp=1.0):
    return normalize_webhook_payload(
        {"technical": {"coreWebVitals": {"mobile": {"LCPs": mobile_lcp}, "desktop": {"LCPs": desktop_lcp}}}},
        rng=random.Random(0),
    )


class FakeWebhookService:
    webhook_url = WEBHOOK_URL

    def __init__(self, results=None):
        self.results = list(results or [])
        self.requested = []

    async def request_analysis(self, website_url):
        self.requested.append(website_url)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def trigger_calendar_generation(self, website_id, website_name, website_url, seo_analysis=None):
        return {"status": "started", "websiteId": website_id}


class FakeAIService:
    def __init__(self):
        self.requests = []

    async def generate_article(self, request):
        self.requests.append(request)
        return GeneratedArticle(title="Titre", content="Contenu", suggestions=["Plus court"])

    async def suggest_keywords(self, topic, content_type):
        return []

    async def analyze_seo(self, seo_data):
        self.requests.append(seo_data)
        return SeoAiAnalysis(
            overall_score=58,
            summary="Bonne base",
            recommendations=[SeoAiRecommendation(title="Compresser les images", action_steps=["Convertir en WebP"])],
        )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def webhooks():
    return FakeWebhookService()


@pytest.fixture
def client(storage, webhooks, tmp_path):
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_content_backend] = lambda: storage
    app.dependency_overrides[deps.get_webhook_service] = lambda: webhooks
    app.dependency_overrides[deps.get_ai_service] = lambda: FakeAIService()
    app.dependency_overrides[deps.get_upload_service] = lambda: UploadService(upload_dir=str(tmp_path), max_bytes=1024)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _content_body(**overrides):
    body = {
        "idSite": 1,
        "typeContent": "instagram",
        "contentText": "Nouveau puzzle en bois !",
        "statut": "en attente",
        "dateDePublication": "2025-03-10",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Websites and analyses
# ---------------------------------------------------------------------------

def test_create_website_survives_failed_analysis(client, webhooks):
    webhooks.results = [UpstreamError("connection reset")]

    response = client.post("/api/websites", json={"name": "Oh les kids", "url": "https://www.oh-les-kids.fr"})

    assert response.status_code == 201
    website = response.json()
    assert website["name"] == "Oh les kids"
    assert "createdAt" in website
    assert client.get(f"/api/websites/{website['id']}/seo-analysis").status_code == 404


def test_create_website_stores_first_analysis(client, webhooks):
    webhooks.results = [_analysis(3.0, 1.8)]

    website = client.post("/api/websites", json={"name": "a", "url": "https://a.fr"}).json()
    analysis = client.get(f"/api/websites/{website['id']}/seo-analysis").json()

    assert analysis["overallScore"] == 52
    assert analysis["pageSpeed"] == 64
    assert analysis["technicalSeo"]["mobileFriendly"] is True


def test_refresh_twice_keeps_latest_only(client, webhooks, storage):
    webhooks.results = [UpstreamError("down"), _analysis(3.0), _analysis(2.0)]
    website = client.post("/api/websites", json={"name": "a", "url": "https://a.fr"}).json()

    assert client.post(f"/api/websites/{website['id']}/refresh-analysis").status_code == 200
    assert client.post(f"/api/websites/{website['id']}/analyze").status_code == 200

    analysis = client.get(f"/api/websites/{website['id']}/seo-analysis").json()
    assert analysis["overallScore"] == 70
    assert len(storage._analyses) == 1


def test_refresh_with_inactive_webhook_is_503(client, webhooks):
    webhooks.results = [
        _analysis(3.0),
        WebhookError("n8n webhook not activated", kind="not_activated", webhook_url=WEBHOOK_URL, status=404),
    ]
    website = client.post("/api/websites", json={"name": "a", "url": "https://a.fr"}).json()

    response = client.post(f"/api/websites/{website['id']}/refresh-analysis")

    assert response.status_code == 503
    body = response.json()
    assert body["kind"] == "not_activated"
    assert body["webhookUrl"] == WEBHOOK_URL
    assert body["message"] == "n8n webhook not activated"


def test_unknown_website_is_404(client):
    response = client.get("/api/websites/999")
    assert response.status_code == 404
    assert "message" in response.json()


def test_put_seo_analysis_updates_fields(client, webhooks):
    webhooks.results = [_analysis(3.0)]
    website = client.post("/api/websites", json={"name": "a", "url": "https://a.fr"}).json()

    response = client.put(f"/api/websites/{website['id']}/seo-analysis", json={"backlinks": 321})
    assert response.status_code == 200
    assert response.json()["backlinks"] == 321


def test_put_nested_technical_seo_keeps_wire_format(client, webhooks):
    webhooks.results = [_analysis(3.0)]
    website = client.post("/api/websites", json={"name": "a", "url": "https://a.fr"}).json()

    response = client.put(f"/api/websites/{website['id']}/seo-analysis", json={"technicalSeo": {
        "mobileFriendly": False, "httpsSecure": True, "xmlSitemap": False, "robotsTxt": True,
    }})
    assert response.status_code == 200

    technical = client.get(f"/api/websites/{website['id']}/seo-analysis").json()["technicalSeo"]
    assert technical == {"mobileFriendly": False, "httpsSecure": True, "xmlSitemap": False, "robotsTxt": True}


def test_blank_website_name_is_400(client):
    response = client.post("/api/websites", json={"name": "  ", "url": "https://a.fr"})
    assert response.status_code == 400
    assert response.json()["errors"]


# ---------------------------------------------------------------------------
# Editorial content
# ---------------------------------------------------------------------------

def test_create_and_list_content(client):
    created = client.post("/api/editorial-content", json=_content_body())
    assert created.status_code == 201
    item = created.json()
    assert item["hasImage"] is False
    assert item["imageUrl"] is None

    listed = client.get("/api/editorial-content", params={"siteId": 1}).json()
    assert [i["id"] for i in listed] == [item["id"]]
    assert client.get("/api/editorial-content", params={"siteId": 2}).json() == []


def test_content_for_date(client):
    client.post("/api/editorial-content", json=_content_body(dateDePublication="2025-03-10"))
    client.post("/api/editorial-content", json=_content_body(dateDePublication="2025-03-11"))

    items = client.get("/api/editorial-content/date/2025-03-11").json()
    assert [i["dateDePublication"] for i in items] == ["2025-03-11"]


def test_has_image_without_url_is_400(client):
    response = client.post("/api/editorial-content", json=_content_body(hasImage=True))
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request"
    assert body["errors"]


def test_unknown_content_type_is_400(client):
    response = client.post("/api/editorial-content", json=_content_body(typeContent="myspace"))
    assert response.status_code == 400


def test_bulk_update_reports_count(client):
    ids = [client.post("/api/editorial-content", json=_content_body()).json()["id"] for _ in range(2)]

    response = client.put("/api/editorial-content/bulk-update", json={"ids": ids + ["999"], "statut": "validé"})

    assert response.status_code == 200
    assert response.json()["updated"] == 2
    assert "2 of 3" in response.json()["message"]


def test_bulk_update_rejects_publish(client):
    item = client.post("/api/editorial-content", json=_content_body()).json()
    response = client.put("/api/editorial-content/bulk-update", json={"ids": [item["id"]], "statut": "publié"})
    assert response.status_code == 400


def test_bulk_update_requires_ids(client):
    response = client.put("/api/editorial-content/bulk-update", json={"ids": [], "statut": "validé"})
    assert response.status_code == 400


def test_update_and_delete_content(client):
    item = client.post("/api/editorial-content", json=_content_body()).json()

    updated = client.put(f"/api/editorial-content/{item['id']}", json={"statut": "publié"})
    assert updated.status_code == 200
    assert updated.json()["statut"] == "publié"

    assert client.delete(f"/api/editorial-content/{item['id']}").status_code == 200
    assert client.delete(f"/api/editorial-content/{item['id']}").status_code == 404


# ---------------------------------------------------------------------------
# Generation, uploads, calendar
# ---------------------------------------------------------------------------

def test_generate_article(client):
    response = client.post(
        "/api/generate-article",
        json={"contentType": "blog", "keywords": "jouets, bois", "existingContent": "Ancien"},
    )
    assert response.status_code == 200
    assert response.json() == {"title": "Titre", "content": "Contenu", "suggestions": ["Plus court"]}


def test_generate_article_needs_keywords(client):
    response = client.post("/api/generate-article", json={"contentType": "blog", "keywords": []})
    assert response.status_code == 400


def test_upload_image(client, tmp_path):
    response = client.post("/api/upload-image", files={"image": ("photo.png", b"\x89PNG....", "image/png")})

    assert response.status_code == 200
    path = response.json()["imageUrl"]
    assert path.startswith("/uploads/") and path.endswith(".png")
    assert (tmp_path / path.rsplit("/", 1)[1]).read_bytes() == b"\x89PNG...."


def test_upload_rejects_non_images(client):
    response = client.post("/api/upload-image", files={"image": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400


def test_upload_rejects_large_files(client):
    response = client.post("/api/upload-image", files={"image": ("big.jpg", b"x" * 2048, "image/jpeg")})
    assert response.status_code == 400


def test_calendar_generation_and_status(client):
    started = client.post("/api/generate-editorial-calendar", json={
        "websiteId": 1, "websiteName": "a", "websiteUrl": "https://a.fr", "seoAnalysis": {},
    })
    assert started.status_code == 200
    assert started.json()["success"] is True

    since = started.json()["startedAt"]
    client.post("/api/editorial-content", json=_content_body(idSite=1))
    status = client.get("/api/check-generation-status/1", params={"since": since}).json()
    assert status == {"hasNewContent": True, "newContentCount": 1}


# ---------------------------------------------------------------------------
# Plumbing
# ---------------------------------------------------------------------------

def test_health_and_headers(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Robots-Tag"] == "noindex, nofollow"
    assert response.headers["Cache-Control"] == "private, no-cache"


def test_seo_ai_analysis(client):
    response = client.post("/api/seo-ai-analysis", json={"siteId": 3, "seoData": {"overallScore": 52}})

    assert response.status_code == 200
    body = response.json()
    assert body["overallScore"] == 58
    assert body["strengths"] == []
    assert body["recommendations"][0]["actionSteps"] == ["Convertir en WebP"]
    assert body["recommendations"][0]["priority"] == "medium"


def test_seo_ai_analysis_requires_site_id(client):
    assert client.post("/api/seo-ai-analysis", json={"seoData": {}}).status_code == 400
