"""Tests for health endpoints."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from newsreel_engine.api.routes.health import provider_credentials
from newsreel_engine.config import settings
from newsreel_engine.main import app
from newsreel_engine.services.storage import ObjectStore, get_object_store


def test_health_endpoint(test_client: TestClient) -> None:
    """Test the basic health endpoint."""
    response = test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


def test_health_reports_providers(test_client: TestClient) -> None:
    response = test_client.get("/health")

    assert response.json()["providers"] == {
        "image_gen": "stub",
        "voiceover": "stub",
        "llm": "stub",
        "renderer": "stub",
        "publisher": "stub",
    }


def test_liveness_endpoint(test_client: TestClient) -> None:
    response = test_client.get("/health/live")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"


def test_root_endpoint(test_client: TestClient) -> None:
    """Test the root endpoint."""
    response = test_client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Newsreel Engine"
    assert "version" in data
    assert "docs" in data


class TestProviderCredentials:
    def test_stub_providers_need_nothing(self) -> None:
        assert all(provider_credentials(settings).values())

    def test_gemini_without_key(self) -> None:
        config = settings.model_copy(
            update={"image_gen_provider": "gemini", "llm_provider": "Gemini", "google_api_key": None}
        )

        credentials = provider_credentials(config)

        assert credentials["image_gen"] is False
        assert credentials["llm"] is False
        assert credentials["voiceover"] is True

    def test_e2b_and_youtube(self) -> None:
        config = settings.model_copy(
            update={
                "renderer_provider": "e2b",
                "e2b_api_key": "e2b-key",
                "publisher_provider": "youtube",
                "youtube_client_id": "client",
                "youtube_client_secret": None,
                "youtube_refresh_token": "refresh",
            }
        )

        credentials = provider_credentials(config)

        assert credentials["renderer"] is True
        assert credentials["publisher"] is False


class TestReadiness:
    @pytest.fixture
    def ready_store(self, tmp_path: Path) -> Iterator[ObjectStore]:
        store = ObjectStore(base_path=tmp_path / "objects", public_base_url="https://cdn.test/media")
        app.dependency_overrides[get_object_store] = lambda: store
        try:
            yield store
        finally:
            app.dependency_overrides.pop(get_object_store, None)

    def test_all_ready(self, test_client: TestClient, ready_store: ObjectStore) -> None:
        with patch("redis.from_url") as from_url:
            response = test_client.get("/health/ready")

        from_url.return_value.ping.assert_called_once()
        data = response.json()
        assert data["ready"] is True
        assert data["database"] is True
        assert data["object_store"] is True
        assert set(data["credentials"]) == {"image_gen", "voiceover", "llm", "renderer", "publisher"}
        assert list(ready_store.base_path.iterdir()) == []

    def test_missing_schema(self, test_client: TestClient, ready_store: ObjectStore) -> None:
        with (
            patch("redis.from_url"),
            patch(
                "newsreel_engine.db.session.init_db",
                side_effect=RuntimeError("Database is missing tables videos"),
            ),
        ):
            data = test_client.get("/health/ready").json()

        assert data["database"] is False
        assert data["ready"] is False

    def test_unwritable_store(self, test_client: TestClient) -> None:
        store = MagicMock(spec=ObjectStore)
        store.is_writable.return_value = False
        store.base_path = Path("/read-only")
        app.dependency_overrides[get_object_store] = lambda: store
        try:
            with patch("redis.from_url"):
                data = test_client.get("/health/ready").json()
        finally:
            app.dependency_overrides.pop(get_object_store, None)

        assert data["object_store"] is False
        assert data["ready"] is False

    def test_missing_credentials(self, test_client: TestClient, ready_store: ObjectStore) -> None:
        config = settings.model_copy(update={"publisher_provider": "youtube"})
        with (
            patch("redis.from_url"),
            patch("newsreel_engine.api.routes.health.settings", config),
        ):
            data = test_client.get("/health/ready").json()

        assert data["credentials"]["publisher"] is False
        assert data["ready"] is False
