"""Tests for the capsule REST client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from capsulekit.api_client import CapsuleAPIClient
from capsulekit.config import Settings
from capsulekit.engine.registry import CapsuleRegistry
from capsulekit.errors import APIError, CatalogLoadError


@pytest.fixture
def api_settings(catalog_dir) -> Settings:
    return Settings(
        catalog_dir=catalog_dir,
        include_builtin=False,
        api_url="https://builder.example.com/api/v1/",
        api_key="cb_test_key",
    )


@pytest.fixture
def client(api_settings) -> CapsuleAPIClient:
    return CapsuleAPIClient(api_settings)


def _response(status_code: int = 200, payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    return response


def _patched(response):
    """Patch httpx.AsyncClient so every request returns the given response."""
    patcher = patch("capsulekit.api_client.httpx.AsyncClient")
    mock_client_cls = patcher.start()
    mock_client = AsyncMock()
    mock_client.request = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return patcher, mock_client


CARD_RECORD = {
    "id": "card",
    "name": "Card",
    "category": "layout",
    "props": {"elevated": {"type": "boolean", "default": False}},
    "platforms": {"web": {"framework": "react", "code": "export function Card() {}\n"}},
}


class TestCapsuleAPIClient:
    def test_init(self, client):
        assert client.base_url == "https://builder.example.com/api/v1"
        assert client.headers["Authorization"] == "Bearer cb_test_key"

    def test_no_key_no_auth_header(self, catalog_dir):
        client = CapsuleAPIClient(Settings(catalog_dir=catalog_dir))

        assert "Authorization" not in client.headers

    async def test_get_project(self, client):
        patcher, mock_client = _patched(
            _response(
                payload={
                    "project": {
                        "id": "p1",
                        "name": "Shop",
                        "capsules": [{"id": "c1", "type": "card", "props": {}}],
                    }
                }
            )
        )
        try:
            project = await client.get_project("p1")
        finally:
            patcher.stop()

        assert project.id == "p1"
        assert project.instances[0].capsule_id == "card"
        method, url = mock_client.request.call_args.args
        assert method == "GET"
        assert url == "https://builder.example.com/api/v1/projects/p1"

    async def test_get_projects(self, client):
        patcher, mock_client = _patched(
            _response(
                payload={
                    "projects": [
                        {"id": "p1", "name": "Shop", "status": "ready"},
                        {"id": "p2", "name": "Blog"},
                    ]
                }
            )
        )
        try:
            projects = await client.get_projects()
        finally:
            patcher.stop()

        assert [p.id for p in projects] == ["p1", "p2"]
        assert mock_client.request.call_args.args == (
            "GET",
            "https://builder.example.com/api/v1/projects",
        )

    async def test_delete_project(self, client):
        patcher, mock_client = _patched(_response(204))
        try:
            result = await client.delete_project("p1")
        finally:
            patcher.stop()

        assert result is None
        assert mock_client.request.call_args.args == (
            "DELETE",
            "https://builder.example.com/api/v1/projects/p1",
        )

    async def test_create_project(self, client):
        patcher, mock_client = _patched(
            _response(201, {"success": True, "project": {"id": "p2", "name": "Blog"}})
        )
        try:
            project = await client.create_project("Blog", template="blog")
        finally:
            patcher.stop()

        assert project.id == "p2"
        assert project.instances == []
        assert mock_client.request.call_args.kwargs["json"] == {
            "name": "Blog",
            "description": "",
            "template": "blog",
        }

    async def test_update_project_uses_put(self, client):
        patcher, mock_client = _patched(
            _response(payload={"project": {"id": "p1", "name": "Renamed"}})
        )
        try:
            project = await client.update_project("p1", {"name": "Renamed"})
        finally:
            patcher.stop()

        assert project.name == "Renamed"
        assert mock_client.request.call_args.args[0] == "PUT"

    async def test_add_capsule_posts_type_and_props(self, client):
        patcher, mock_client = _patched(
            _response(201, {"capsule": {"id": "c9", "type": "button", "props": {"text": "Go"}}})
        )
        try:
            instance = await client.add_capsule("p1", "button", {"text": "Go"})
        finally:
            patcher.stop()

        assert instance.instance_id == "c9"
        assert instance.project_id == "p1"
        assert mock_client.request.call_args.kwargs["json"] == {
            "type": "button",
            "props": {"text": "Go"},
        }

    async def test_remove_capsule(self, client):
        patcher, mock_client = _patched(_response(204))
        try:
            await client.remove_capsule("p1", "c9")
        finally:
            patcher.stop()

        assert mock_client.request.call_args.args[0] == "DELETE"

    async def test_error_response_raises(self, client):
        patcher, _ = _patched(_response(404, {"error": {"message": "Project not found"}}))
        try:
            with pytest.raises(APIError) as excinfo:
                await client.get_project("missing")
        finally:
            patcher.stop()

        assert excinfo.value.status_code == 404
        assert str(excinfo.value) == "Project not found"

    async def test_export_project(self, client):
        patcher, mock_client = _patched(
            _response(payload={"success": True, "downloadUrl": "/exports/p1.zip"})
        )
        try:
            result = await client.export_project("p1", {"format": "nextjs"})
        finally:
            patcher.stop()

        assert result["downloadUrl"] == "/exports/p1.zip"
        method, url = mock_client.request.call_args.args
        assert method == "POST"
        assert url.endswith("/projects/p1/export")
        assert mock_client.request.call_args.kwargs["json"] == {"format": "nextjs"}

    async def test_export_native(self, client):
        patcher, mock_client = _patched(_response(payload={"success": True}))
        try:
            result = await client.export_native("p1", {"platform": "ios"})
        finally:
            patcher.stop()

        assert result == {"success": True}
        assert mock_client.request.call_args.args[1].endswith("/projects/p1/export-native")

    async def test_sync_catalog_registers_batch(self, client):
        registry = CapsuleRegistry()
        patcher, _ = _patched(_response(payload={"capsules": [CARD_RECORD]}))
        try:
            warnings = await client.sync_catalog(registry)
        finally:
            patcher.stop()

        assert warnings == []
        assert registry.get("card").props.names == ["elevated"]

    async def test_get_capsule(self, client):
        patcher, mock_client = _patched(_response(payload={"capsule": CARD_RECORD}))
        try:
            definition = await client.get_capsule("card")
        finally:
            patcher.stop()

        assert definition.id == "card"
        assert definition.platforms["web"].files[0].name == "Card.tsx"
        assert mock_client.request.call_args.args[1].endswith("/capsules/card")

    async def test_get_capsule_bad_record(self, client):
        broken = {**CARD_RECORD, "category": "widgets"}
        patcher, _ = _patched(_response(payload={"capsule": broken}))
        try:
            with pytest.raises(CatalogLoadError) as excinfo:
                await client.get_capsule("card")
        finally:
            patcher.stop()

        assert excinfo.value.path == "https://builder.example.com/api/v1/capsules/card"

    async def test_bad_catalog_record_rejects_whole_fetch(self, client):
        broken = {**CARD_RECORD, "id": "broken", "platforms": {}}
        patcher, _ = _patched(_response(payload={"capsules": [CARD_RECORD, broken]}))
        try:
            with pytest.raises(CatalogLoadError):
                await client.get_capsule_catalog()
        finally:
            patcher.stop()
