"""
Tests for file upload and blob URL endpoints.
"""

import pytest
from httpx import AsyncClient

from paperdesk.common.errors import FileRejected
from paperdesk.config import settings
from paperdesk.storage.service import validate_upload
from tests.conftest import InMemoryBlobStore, make_pdf, make_png


class TestValidateUpload:
    def test_accepts_pdf_and_images(self):
        validate_upload("application/pdf", 10)
        validate_upload("image/png", 10)

    def test_rejects_other_types(self):
        with pytest.raises(FileRejected):
            validate_upload("text/html", 10)

    def test_rejects_empty(self):
        with pytest.raises(FileRejected):
            validate_upload("application/pdf", 0)

    def test_rejects_oversize(self, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_mb", 1)
        with pytest.raises(FileRejected):
            validate_upload("application/pdf", 1024 * 1024 + 1)


class TestUploadEndpoint:
    """POST /api/files"""

    async def test_upload_pdf(self, customer_client: AsyncClient, blobs: InMemoryBlobStore):
        content = make_pdf()
        resp = await customer_client.post("/api/files", files={"file": ("deed.pdf", content, "application/pdf")})
        assert resp.status_code == 201
        body = resp.json()
        assert body["original_name"] == "deed.pdf"
        assert body["file_size"] == len(content)
        assert body["is_processed"] is False
        assert blobs.get(body["storage_id"]) == content

    async def test_upload_image_is_processed(self, customer_client: AsyncClient):
        resp = await customer_client.post("/api/files", files={"file": ("seal.png", make_png(), "image/png")})
        assert resp.status_code == 201
        assert resp.json()["is_processed"] is True

    async def test_upload_rejected_type(self, customer_client: AsyncClient, blobs: InMemoryBlobStore):
        resp = await customer_client.post("/api/files", files={"file": ("x.html", b"<html>", "text/html")})
        assert resp.status_code == 400
        assert blobs.blobs == {}


class TestFileUrl:
    """GET /api/files/{storage_id}/url"""

    async def test_url_for_uploaded_file(self, customer_client: AsyncClient):
        upload = await customer_client.post("/api/files", files={"file": ("d.pdf", make_pdf(), "application/pdf")})
        storage_id = upload.json()["storage_id"]

        resp = await customer_client.get(f"/api/files/{storage_id}/url")
        assert resp.status_code == 200
        assert resp.json()["url"].endswith(storage_id)

    async def test_unknown_file(self, customer_client: AsyncClient):
        resp = await customer_client.get("/api/files/nope/url")
        assert resp.status_code == 404
