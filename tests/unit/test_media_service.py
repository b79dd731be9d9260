import io
import re
from unittest.mock import AsyncMock

import pytest
from starlette.datastructures import Headers, UploadFile

from app.core.exceptions import MediaTooLargeError, MediaTypeError, StoreUnavailableError
from app.schemas.media import MediaKind, UploadedFile
from app.services.media import (
    LocalObjectStore,
    MediaIngestionService,
    object_path,
    read_upload,
    safe_object_name,
)


@pytest.mark.unit
class TestObjectNames:
    def test_unsafe_characters_are_replaced(self):
        assert safe_object_name("my shop (1).jpg") == "my_shop__1_.jpg"

    def test_name_is_truncated(self):
        assert len(safe_object_name("a" * 300)) == 120

    def test_fallback_for_empty_name(self):
        assert safe_object_name("", fallback="image") == "image"

    def test_object_path_layout(self):
        path = object_path("business/logo", "owner_1", "logo.png")
        assert re.fullmatch(r"business/logo/owner_1/\d+_logo\.png", path)


@pytest.mark.unit
class TestMediaIngestionService:
    @pytest.fixture
    def service(self, tmp_path):
        return MediaIngestionService(
            LocalObjectStore(root=str(tmp_path), base_url="http://test/media/")
        )

    async def test_ingest_stores_file(self, service, tmp_path):
        upload = UploadedFile("logo.png", "image/png", b"png-bytes")

        stored = await service.ingest(upload, MediaKind.IMAGE, "owner_1", "business/logo")

        assert stored.path.startswith("business/logo/owner_1/")
        assert stored.url == f"http://test/media/{stored.path}"
        assert stored.name == "logo.png"
        assert stored.content_type == "image/png"
        assert stored.size == 9
        assert (tmp_path / stored.path).read_bytes() == b"png-bytes"

    async def test_stored_media_document_uses_camel_case(self, service):
        upload = UploadedFile("gst.pdf", "application/pdf", b"%PDF")
        stored = await service.ingest(upload, MediaKind.DOCUMENT, "owner_1", "business/gst")
        assert set(stored.to_document()) == {"path", "url", "name", "contentType", "size"}

    async def test_too_large(self, service, tmp_path):
        upload = UploadedFile("big.png", "image/png", b"x" * (5 * 1024 * 1024 + 1))
        with pytest.raises(MediaTooLargeError, match="Shop image must be under 5MB."):
            await service.ingest(
                upload, MediaKind.IMAGE, "owner_1", "business/shop", label="Shop image"
            )
        assert not any(tmp_path.iterdir())

    async def test_wrong_type(self, service):
        upload = UploadedFile("clip.png", "image/png", b"x")
        with pytest.raises(MediaTypeError, match="Self video must be a video."):
            await service.ingest(
                upload, MediaKind.VIDEO, "owner_1", "kyc/selfie", label="Self video"
            )

    async def test_store_failure(self):
        store = AsyncMock()
        store.store.side_effect = ConnectionError("bucket offline")
        service = MediaIngestionService(store)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.ingest(
                UploadedFile("a.png", "image/png", b"x"),
                MediaKind.IMAGE,
                "owner_1",
                "business/logo",
            )
        assert exc_info.value.status_code == 502

    async def test_local_store_write_failure(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = LocalObjectStore(root=str(blocker), base_url="http://test/media")

        with pytest.raises(StoreUnavailableError, match="Failed to upload file."):
            await store.store(b"x", "image/png", "business/logo/o/a.png")

    async def test_local_store_refuses_paths_outside_root(self, tmp_path):
        store = LocalObjectStore(root=str(tmp_path / "media"), base_url="http://test/media")

        with pytest.raises(StoreUnavailableError):
            await store.store(b"x", "video/mp4", "kyc/location/../../../escaped/a.mp4")
        assert not (tmp_path / "escaped").exists()


@pytest.mark.unit
class TestReadUpload:
    async def test_reads_upload_file(self):
        upload = UploadFile(
            file=io.BytesIO(b"abc"),
            filename="shop.jpg",
            headers=Headers({"content-type": "image/jpeg"}),
        )
        result = await read_upload(upload)
        assert result == UploadedFile("shop.jpg", "image/jpeg", b"abc")

    async def test_empty_file_input_is_absent(self):
        upload = UploadFile(file=io.BytesIO(b""), filename="")
        assert await read_upload(upload) is None

    async def test_plain_string_is_absent(self):
        assert await read_upload("logo.png") is None
        assert await read_upload(None) is None
