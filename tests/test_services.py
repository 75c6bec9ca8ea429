"""Tests for image_exporter services."""
import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from image_exporter.config import ExportConfig
from image_exporter.errors import (
    APIStatusError,
    EntityNotFoundError,
    NoLocatorReturnedError,
    PersistenceError,
    UploadError,
    ValidationError,
)
from image_exporter.models import ImageSlot
from image_exporter.services.api_client import HTTPAPIClient
from image_exporter.services.assets_api import AssetsAPIClient, AssetUploadResponse
from image_exporter.services.file_reader import ImageFile
from image_exporter.services.repository import EntityRepository, parse_entity_id
from image_exporter.services.uploader import RemoteUploaderService


IMAGE = ImageFile(data=b"jpeg-bytes", filename="a.jpg", content_type="image/jpeg")


class TestAssetUploadResponse:
    def test_prefers_original_url(self):
        response = AssetUploadResponse.from_payload(
            {"id": "as-1", "urls": {"original": "https://cdn/o.jpg", "preview": "https://cdn/p.jpg"}}
        )
        assert response.is_error is False
        assert response.locator == "https://cdn/o.jpg"
        assert response.asset_id == "as-1"

    def test_falls_back_to_preview(self):
        response = AssetUploadResponse.from_payload({"urls": {"preview": "https://cdn/p.jpg"}})
        assert response.locator == "https://cdn/p.jpg"

    def test_error_message_list(self):
        response = AssetUploadResponse.from_payload(
            {"statusCode": 400, "message": ["file too large", "bad type"]}, 400
        )
        assert response.is_error is True
        assert response.error_messages == ["file too large", "bad type"]

    def test_non_json_error(self):
        response = AssetUploadResponse.from_payload("Bad Gateway", 502)
        assert response.error_messages == ["HTTP 502: Bad Gateway"]


class TestAssetsAPIClient:
    @pytest.mark.asyncio
    async def test_upload_sends_multipart_with_api_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-api-key")
            seen["body"] = request.read()
            return httpx.Response(201, json={"urls": {"original": "https://cdn/o.jpg"}})

        client = AssetsAPIClient("http://assets/api/", api_key="secret", transport=httpx.MockTransport(handler))
        async with client:
            response = await client.upload(
                data=b"jpeg-bytes",
                filename="a.jpg",
                content_type="image/jpeg",
                entity_type="PRODUCT",
                entity_id="501",
                tags=["image_main", "product-501"],
                description="Entity 501 - image_main",
                alt_text="Chair",
            )

        assert response.locator == "https://cdn/o.jpg"
        assert seen["url"] == "http://assets/api/assets/upload"
        assert seen["key"] == "secret"
        assert b"jpeg-bytes" in seen["body"]
        assert b"product-501" in seen["body"]
        assert b'name="altText"' in seen["body"]

    @pytest.mark.asyncio
    async def test_upload_error_status(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(413, json={"message": "Payload too large"})
        )
        async with AssetsAPIClient("http://assets/api", transport=transport) as client:
            response = await client.upload(b"x", "a.jpg", "image/jpeg", "PRODUCT", "1", [], "d")
        assert response.error_messages == ["Payload too large"]

    @pytest.mark.asyncio
    async def test_requires_context(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await AssetsAPIClient("http://assets").upload(b"x", "a.jpg", "image/jpeg", "P", "1", [], "d")


class TestRemoteUploaderService:
    @pytest.mark.asyncio
    async def test_returns_locator_and_sends_metadata(self):
        store = AsyncMock()
        store.upload.return_value = AssetUploadResponse(urls={"original": None, "preview": "https://cdn/p.jpg"})
        uploader = RemoteUploaderService(store, ExportConfig(entity_type="PRODUCT", owner_tag_prefix="product"))

        locator = await uploader.upload(IMAGE, 501, ImageSlot.IMAGE_1, alt_text="Chair")

        assert locator == "https://cdn/p.jpg"
        kwargs = store.upload.await_args.kwargs
        assert kwargs["tags"] == ["image1", "product-501"]
        assert kwargs["entity_id"] == "501"
        assert kwargs["entity_type"] == "PRODUCT"
        assert kwargs["description"] == "Entity 501 - image1"
        assert kwargs["content_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_store_error_messages_are_kept_verbatim(self):
        store = AsyncMock()
        store.upload.return_value = AssetUploadResponse(error_messages=["quota exceeded", "try later"])

        with pytest.raises(UploadError) as excinfo:
            await RemoteUploaderService(store).upload(IMAGE, 1, ImageSlot.MAIN)

        assert str(excinfo.value) == "quota exceeded, try later"
        assert excinfo.value.messages == ["quota exceeded", "try later"]

    @pytest.mark.asyncio
    async def test_success_without_urls_raises_no_locator(self):
        store = AsyncMock()
        store.upload.return_value = AssetUploadResponse(urls={})

        with pytest.raises(NoLocatorReturnedError):
            await RemoteUploaderService(store).upload(IMAGE, 1, ImageSlot.MAIN)

    @pytest.mark.asyncio
    async def test_deadline_turns_into_upload_error(self):
        async def slow_upload(**kwargs):
            await asyncio.sleep(5)

        store = AsyncMock()
        store.upload.side_effect = slow_upload

        with pytest.raises(UploadError, match="timed out"):
            await RemoteUploaderService(store, ExportConfig(upload_timeout=0.01)).upload(IMAGE, 1, ImageSlot.MAIN)
        assert store.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_not_retried(self):
        store = AsyncMock()
        store.upload.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(UploadError, match="connection refused"):
            await RemoteUploaderService(store).upload(IMAGE, 1, ImageSlot.MAIN)
        assert store.upload.await_count == 1


def _entity_api(handler):
    return HTTPAPIClient("http://entities", transport=httpx.MockTransport(handler))


class TestEntityRepository:
    def test_parse_entity_id(self):
        assert parse_entity_id(5) == 5
        assert parse_entity_id(" 12 ") == 12
        for bad in (0, -1, "", "abc", "1.5", True, None):
            with pytest.raises(ValidationError):
                parse_entity_id(bad)

    @pytest.mark.asyncio
    async def test_load_by_id(self):
        def handler(request):
            assert request.url.path == "/entities/501"
            return httpx.Response(200, json={"name": "Chair", "image_main": "a.jpg", "srv_image1": "u"})

        async with _entity_api(handler) as api:
            record = await EntityRepository(api).load_by_id(501)

        assert record.entity_id == 501
        assert record.local_path(ImageSlot.MAIN) == "a.jpg"
        assert record.has_remote_ref(ImageSlot.IMAGE_1)

    @pytest.mark.asyncio
    async def test_load_missing_entity(self):
        async with _entity_api(lambda r: httpx.Response(404, json={"message": "nope"})) as api:
            with pytest.raises(EntityNotFoundError):
                await EntityRepository(api).load_by_id(9)

    @pytest.mark.asyncio
    async def test_update_marks_exported(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"entity_id": 501})

        async with _entity_api(handler) as api:
            await EntityRepository(api).update_remote_fields_and_mark_exported(
                501, {"srv_image_main": "https://cdn/a.jpg", "srv_image1": "https://cdn/a.jpg"}
            )

        payload = seen["payload"]
        assert seen["method"] == "PATCH"
        assert payload["flag_export"] == 1
        assert payload["srv_image_main"] == "https://cdn/a.jpg"
        assert payload["srv_image1"] == "https://cdn/a.jpg"
        assert payload["exported_at"]

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_field(self):
        async with _entity_api(lambda r: httpx.Response(200, json={})) as api:
            with pytest.raises(ValidationError):
                await EntityRepository(api).update_remote_fields_and_mark_exported(1, {"image_main": "x"})

    @pytest.mark.asyncio
    async def test_update_failure_raises_persistence_error(self):
        async with _entity_api(lambda r: httpx.Response(409, json={"message": "locked"})) as api:
            with pytest.raises(PersistenceError):
                await EntityRepository(api).update_remote_fields_and_mark_exported(
                    1, {"srv_image_main": "https://cdn/a.jpg"}
                )

    @pytest.mark.asyncio
    async def test_list_not_exported_clamps_limit(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"entity_id": 1}, {"entity_id": 2}])

        async with _entity_api(handler) as api:
            rows = await EntityRepository(api).list_not_exported(500)

        assert rows == [{"entity_id": 1}, {"entity_id": 2}]
        assert seen["params"] == {"exported": "0", "limit": "100"}


class TestHTTPAPIClient:
    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        async with _entity_api(handler) as api:
            response = await api.get("/entities/1")

        assert response.json() == {"ok": True}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_raises_status_error(self):
        async with _entity_api(lambda r: httpx.Response(422, json={"message": "bad"})) as api:
            with pytest.raises(APIStatusError) as excinfo:
                await api.patch("/entities/1", json={})
        assert excinfo.value.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_context(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await HTTPAPIClient("http://entities").get("/entities/1")
