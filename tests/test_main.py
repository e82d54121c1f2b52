"""Tests for the HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from backend.app.cache import ResponseCache
from backend.app.main import app, get_request_logger, get_resolver, get_response_cache
from backend.app.providers.resolver import ProviderResolver


@pytest.fixture
def client(catalog, recorder):
    resolver = ProviderResolver(catalog)
    cache = ResponseCache()
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_request_logger] = lambda: recorder
    app.dependency_overrides[get_response_cache] = lambda: cache
    with TestClient(app) as test_client:
        test_client.resolver = resolver
        yield test_client
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers_configured"] == 4
        assert body["capabilities_available"] == ["text", "image", "video"]


class TestCatalogEndpoints:
    def test_providers_for_capability(self, client):
        response = client.get("/providers", params={"capability": "image"})
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["pixel", "studio"]

    def test_providers_all(self, client):
        body = client.get("/providers").json()
        studio = next(p for p in body if p["name"] == "studio")
        assert studio["supports"] == ["text", "image", "video"]

    def test_models_for_provider(self, client):
        body = client.get("/models", params={"provider": "alpha"}).json()
        assert list(body["alpha"]) == ["alpha-1", "alpha-2"]

    def test_models_unknown_provider(self, client):
        response = client.get("/models", params={"provider": "ghost"})
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownProviderError"


class TestText:
    def test_generate(self, client):
        response = client.post("/text", json={"prompt": "hello"})
        assert response.status_code == 200
        body = response.json()
        assert body["text"] == "[alpha:alpha-1] hello"
        assert body["provider"] == "alpha"
        assert body["cached"] is False

    def test_second_request_is_cached(self, client):
        client.post("/text", json={"prompt": "hello"})
        body = client.post("/text", json={"prompt": "hello"}).json()
        assert body["cached"] is True

    def test_pinned_provider_and_model(self, client):
        body = client.post(
            "/text", json={"prompt": "hi", "provider": "alpha", "model": "alpha-2"},
        ).json()
        assert body["model"] == "alpha-2"
        # The shared handle is back on its default afterwards
        assert client.resolver.resolve("alpha").current_model == "alpha-1"

    def test_unknown_provider(self, client):
        response = client.post("/text", json={"prompt": "hi", "provider": "ghost"})
        assert response.status_code == 404

    def test_unsupported_model(self, client):
        response = client.post("/text", json={"prompt": "hi", "model": "nope"})
        assert response.status_code == 400
        assert response.json()["error"] == "UnsupportedModelError"

    def test_blank_prompt(self, client):
        assert client.post("/text", json={"prompt": "   "}).status_code == 422


class TestFailures:
    @pytest.fixture
    def failing_client(self, make_catalog, make_entry, recorder):
        catalog = make_catalog(
            {
                "alpha": make_entry({"alpha-1": ["text"]}, fail_times=10),
                "gone": make_entry({"gone-1": ["image"]}, available=False),
            },
            default_providers={"text": "alpha", "image": "gone"},
        )
        resolver = ProviderResolver(catalog)
        app.dependency_overrides[get_resolver] = lambda: resolver
        app.dependency_overrides[get_request_logger] = lambda: recorder
        app.dependency_overrides[get_response_cache] = lambda: ResponseCache()
        with TestClient(app) as test_client:
            yield test_client
        app.dependency_overrides.clear()

    def test_operation_failed_is_502(self, failing_client, recorder):
        response = failing_client.post("/text", json={"prompt": "hi"})
        assert response.status_code == 502
        assert response.json()["details"]["provider"] == "alpha"
        assert recorder.get_stats().total_failures == 1

    def test_no_provider_is_503(self, failing_client):
        response = failing_client.post("/image", json={"prompt": "cat"})
        assert response.status_code == 503


class TestMedia:
    def test_image_batch(self, client):
        body = client.post("/image", json={"prompt": "cat", "count": 2}).json()
        assert body["provider"] == "pixel"
        assert len(body["urls"]) == 2

    def test_image_count_validated(self, client):
        assert client.post("/image", json={"prompt": "cat", "count": 0}).status_code == 422

    def test_video_submit_and_status(self, client):
        job = client.post("/video", json={"prompt": "waves"}).json()
        assert job["provider"] == "studio"
        assert job["model"] == "studio-video"

        status = client.get(f"/video/{job['job_id']}", params={"provider": "studio"}).json()
        assert status["state"] == "completed"


class TestContent:
    def test_fallback_candidates(self, client):
        response = client.post(
            "/content",
            json={"topic": "Tides", "candidates": ["studio"], "include_image": True},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == "studio"
        assert body["image"].startswith("mock://studio/")

    def test_candidate_without_image_support_is_skipped(self, client):
        response = client.post(
            "/content",
            json={"topic": "Tides", "candidates": ["beta", "studio"], "include_image": True},
        )
        assert response.status_code == 200
        assert response.json()["provider"] == "studio"

    def test_exhausted_candidates_is_503(self, client):
        response = client.post("/content", json={"topic": "Tides", "candidates": ["beta"]})
        assert response.status_code == 503
        assert response.json()["details"]["candidates"] == ["beta"]


class TestHistory:
    def test_logs_and_stats(self, client):
        client.post("/text", json={"prompt": "one"})
        client.post("/image", json={"prompt": "two"})

        logs = client.get("/logs", params={"limit": 1}).json()
        assert len(logs) == 1
        assert logs[0]["capability"] == "image"

        stats = client.get("/stats").json()
        assert stats["total_requests"] == 2
        assert stats["success_rate_percent"] == 100.0
