import httpx
import pytest
import pytest_asyncio

from api.dependencies import get_folder_service, get_upload_service
from application.ports.storage import StorageArea
from application.services.folder_service import FolderApplicationService
from application.services.session_token_service import SessionTokenService
from application.services.upload_service import UploadApplicationService
from core.config import settings
from core.exceptions import _STATUS_BY_CODE, business_code_to_http_status
from infrastructure.external.storage import (
    BackendErrorKind,
    RemoteItemNotFoundError,
    TransientBackendError,
)
from main import app
from shared.codes import BusinessCode

AUTH = {"Authorization": "Bearer test-upload-token"}


@pytest.fixture
def service(uow_factory, fake_drive):
    return UploadApplicationService(
        uow_factory=uow_factory,
        drive=fake_drive,
        tokens=SessionTokenService("test-upload-token"),
    )


@pytest_asyncio.fixture
async def client(service):
    app.dependency_overrides[get_upload_service] = lambda: service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


def test_routes_registered():
    assert app.url_path_for("init_upload") == "/api/v1/upload/init"
    assert app.url_path_for("upload_chunk") == "/api/v1/upload/chunk"
    assert app.url_path_for("upload_file") == "/api/v1/upload"
    assert app.url_path_for("get_cache_entry", key="k1") == "/api/v1/cache/k1"
    assert app.url_path_for("download_file", file_id="f1") == "/api/v1/bin/f1"
    assert app.url_path_for("list_folders") == "/api/v1/folders"


def test_every_business_code_maps_to_a_status():
    assert set(_STATUS_BY_CODE) == set(BusinessCode) - {BusinessCode.SUCCESS}
    assert business_code_to_http_status(BusinessCode.PARAM_VALIDATION_ERROR) == 400
    assert business_code_to_http_status(BusinessCode.CONFLICT) == 409
    assert business_code_to_http_status(99999) == 400


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_missing_credentials_are_rejected(client):
    resp = await client.post("/api/v1/upload/init", json={"filename": "a.bin", "fileSize": 10})

    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"
    assert resp.json()["error"]["type"] == "Unauthorized"


@pytest.mark.asyncio
async def test_wrong_token_is_rejected(client):
    resp = await client.post(
        "/api/v1/upload/init",
        json={"filename": "a.bin", "fileSize": 10},
        headers={"Authorization": "Bearer nope"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_empty_upload_token_is_a_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_TOKEN", None)

    resp = await client.post("/api/v1/upload/init", json={"filename": "a.bin", "fileSize": 10}, headers=AUTH)

    assert resp.status_code == 500
    assert resp.json()["message"] == "Server misconfigured: UPLOAD_TOKEN is empty"


@pytest.mark.asyncio
async def test_missing_drive_settings_are_listed(client, monkeypatch):
    monkeypatch.setattr(settings.onedrive, "client_secret", None)

    resp = await client.post("/api/v1/upload/init", json={"filename": "a.bin", "fileSize": 10}, headers=AUTH)

    assert resp.status_code == 500
    assert resp.json()["error"]["details"] == {"missing": ["ONEDRIVE__CLIENT_SECRET"]}


@pytest.mark.asyncio
async def test_chunked_upload_over_http(client):
    init = await client.post(
        "/api/v1/upload/init",
        json={"filename": "notes.txt", "fileSize": 8, "mimeType": "text/plain"},
        headers={"X-Authorization": "test-upload-token"},
    )
    assert init.status_code == 200
    session = init.json()["data"]
    assert session["chunkSize"] == 10 * 320 * 1024
    upload_id = session["uploadId"]

    first = await client.post(
        "/api/v1/upload/chunk",
        content=b"abcd",
        headers={**AUTH, "x-upload-id": upload_id, "content-range": "bytes 0-3/8"},
    )
    assert first.status_code == 200
    assert first.json()["data"] == {"done": False, "nextExpectedRanges": ["4-"]}

    last = await client.post(
        "/api/v1/upload/chunk",
        content=b"efgh",
        headers={**AUTH, "x-upload-id": upload_id, "content-range": "bytes 4-7/8"},
    )
    body = last.json()["data"]
    assert last.status_code == 200
    assert body["done"] is True
    assert body["size"] == 8
    assert body["file"]["mime_type"] == "text/plain"

    download = await client.get(f"/api/v1/bin/{body['fileId']}")
    assert download.status_code == 302
    assert download.headers["location"] == "https://download.example/files/notes.txt"


@pytest.mark.asyncio
async def test_fractional_chunk_multiplier_is_floored(client):
    upload = await client.post(
        "/api/v1/upload/init",
        json={"filename": "a.bin", "fileSize": 10, "chunkMultiplier": 2.5},
        headers=AUTH,
    )
    cache = await client.post(
        "/api/v1/cache/init",
        json={"key": "k1", "fileSize": 10, "chunkMultiplier": 0.5},
        headers=AUTH,
    )

    assert upload.status_code == 200
    assert upload.json()["data"]["chunkSize"] == 2 * 320 * 1024
    assert cache.status_code == 200
    assert cache.json()["data"]["chunkSize"] == 320 * 1024


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, payload",
    [
        ("/api/v1/upload/init", {"filename": "a.bin", "fileSize": "abc"}),
        ("/api/v1/cache/init", {"key": "k1", "fileSize": "abc"}),
        ("/api/v1/upload/init", {"filename": "a.bin", "fileSize": 10, "chunkMultiplier": "big"}),
    ],
)
async def test_malformed_session_request_is_a_client_error(client, fake_drive, path, payload):
    resp = await client.post(path, json=payload, headers=AUTH)

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["type"] == "ValidationError"
    assert body["error"]["field"] in ("fileSize", "chunkMultiplier")
    assert not fake_drive.sessions


@pytest.mark.asyncio
async def test_bad_content_range_is_a_client_error(client):
    init = await client.post("/api/v1/upload/init", json={"filename": "a.bin", "fileSize": 10}, headers=AUTH)
    upload_id = init.json()["data"]["uploadId"]

    resp = await client.post(
        "/api/v1/upload/chunk",
        content=b"x" * 10,
        headers={**AUTH, "x-upload-id": upload_id, "content-range": "bytes 0-9/*"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "InvalidContentRange"


@pytest.mark.asyncio
async def test_forged_upload_id_is_a_client_error(client):
    resp = await client.post(
        "/api/v1/upload/chunk",
        content=b"x" * 10,
        headers={**AUTH, "x-upload-id": "forged.token", "content-range": "bytes 0-9/10"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired uploadId"


@pytest.mark.asyncio
async def test_exhausted_drive_retries_map_to_503(client, fake_drive):
    async def failing_chunk(*args, **kwargs):
        raise TransientBackendError(
            "Chunk upload failed", kind=BackendErrorKind.RATE_LIMITED, status_code=429, content_range="bytes 0-9/10"
        )

    init = await client.post("/api/v1/upload/init", json={"filename": "a.bin", "fileSize": 10}, headers=AUTH)
    fake_drive.upload_chunk = failing_chunk

    resp = await client.post(
        "/api/v1/upload/chunk",
        content=b"x" * 10,
        headers={**AUTH, "x-upload-id": init.json()["data"]["uploadId"], "content-range": "bytes 0-9/10"},
    )

    assert resp.status_code == 503
    assert resp.json()["error"]["type"] == "TransientBackendError"


@pytest.mark.asyncio
async def test_multipart_relay_upload(client, fake_drive):
    resp = await client.post(
        "/api/v1/upload",
        files={"file": ("hello.txt", b"hello world", "text/plain")},
        data={"fileSize": "11"},
        headers=AUTH,
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["file_size"] == 11
    assert fake_drive.uploads[0][:2] == ("hello.txt", StorageArea.FILES)


@pytest.mark.asyncio
async def test_multipart_size_mismatch(client):
    resp = await client.post(
        "/api/v1/upload",
        files={"file": ("blob.bin", bytes([0, 1, 2, 255]), "application/octet-stream")},
        data={"fileSize": "5"},
        headers=AUTH,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "SizeMismatch"


@pytest.mark.asyncio
async def test_cache_endpoints(client):
    put = await client.put("/api/v1/cache/artifact-1", content=b"cached bytes", headers=AUTH)
    assert put.status_code == 200
    assert put.json()["data"] == {"key": "artifact-1", "size": 12}

    listing = await client.get("/api/v1/cache", params={"prefix": "artifact"}, headers=AUTH)
    assert listing.json()["data"] == ["artifact-1"]

    redirect = await client.get("/api/v1/cache/artifact-1", headers=AUTH)
    assert redirect.status_code == 302
    assert redirect.headers["location"] == "https://download.example/cache/artifact-1"

    deleted = await client.delete("/api/v1/cache/artifact-1", headers=AUTH)
    assert deleted.json()["data"] == {"deleted": "artifact-1"}

    missing = await client.get("/api/v1/cache/artifact-1", headers=AUTH)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_cache_requires_authorization(client):
    resp = await client.get("/api/v1/cache")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_file_download_is_404(client):
    resp = await client.get("/api/v1/bin/does-not-exist")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_folder_endpoints(client, uow_factory):
    app.dependency_overrides[get_folder_service] = lambda: FolderApplicationService(uow_factory)

    unauthorized = await client.post("/api/v1/folders", json={"name": "docs"})
    assert unauthorized.status_code == 401

    created = await client.post("/api/v1/folders", json={"name": "docs"}, headers=AUTH)
    assert created.status_code == 201
    docs = created.json()["data"]

    child = await client.post("/api/v1/folders", json={"name": "2024", "parentId": docs["id"]}, headers=AUTH)
    duplicate = await client.post("/api/v1/folders", json={"name": "docs"}, headers=AUTH)
    orphan = await client.post("/api/v1/folders", json={"name": "x", "parentId": "missing"}, headers=AUTH)
    assert duplicate.status_code == 409
    assert orphan.status_code == 404

    roots = await client.get("/api/v1/folders")
    assert [f["name"] for f in roots.json()["data"]] == ["docs"]
    children = await client.get("/api/v1/folders", params={"parentId": docs["id"]})
    assert [f["id"] for f in children.json()["data"]] == [child.json()["data"]["id"]]


@pytest.mark.asyncio
async def test_request_id_is_echoed_or_regenerated(client):
    echoed = await client.get("/api/v1/health", headers={"X-Request-ID": "trace-123"})
    assert echoed.headers["X-Request-ID"] == "trace-123"

    replaced = await client.get("/api/v1/health", headers={"X-Request-ID": "bad id with spaces"})
    assert replaced.headers["X-Request-ID"] != "bad id with spaces"
    assert len(replaced.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_file_missing_on_drive_is_404(client, service, fake_drive):
    record = await service.relay_upload(data=bytes([1, 2, 255]), filename="gone.bin")

    async def missing(name, *, area=StorageArea.FILES):
        raise RemoteItemNotFoundError("Failed to get file: itemNotFound", status_code=404)

    fake_drive.download_url = missing
    resp = await client.get(f"/api/v1/bin/{record.id}")

    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "RemoteItemNotFoundError"
