import base64
import json

from application.services.session_token_service import (
    SessionTokenService,
    _sign,
    create_session_token,
    verify_session_token,
)
from domain.upload import UploadSessionDescriptor

SECRET = "s3cret"
NOW_MS = 1_700_000_000_000


def _descriptor(**overrides) -> UploadSessionDescriptor:
    values = dict(
        upload_url="https://upload.example/session/1",
        file_size=716800,
        filename="report.pdf",
        file_id="0f8fad5b-d9cb-469f-a165-70867728950e",
        exp=NOW_MS + 60_000,
        mime_type="application/pdf",
        folder_path="docs/2024",
    )
    values.update(overrides)
    return UploadSessionDescriptor(**values)


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def test_round_trip_preserves_every_field():
    descriptor = _descriptor(hidden=True)
    token = create_session_token(descriptor, SECRET)

    assert verify_session_token(token, SECRET, now_ms=NOW_MS) == descriptor


def test_payload_uses_fixed_key_order():
    token = create_session_token(_descriptor(), SECRET)
    payload = token.split(".")[0]
    raw = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))

    assert list(json.loads(raw)) == [
        "uploadUrl", "fileSize", "filename", "mimeType", "fileId", "folderPath", "hidden", "exp",
    ]
    assert b" " not in raw


def test_wrong_secret_is_rejected():
    token = create_session_token(_descriptor(), SECRET)
    assert verify_session_token(token, "other", now_ms=NOW_MS) is None


def test_expired_token_is_rejected_at_exact_expiry():
    descriptor = _descriptor()
    token = create_session_token(descriptor, SECRET)

    assert verify_session_token(token, SECRET, now_ms=descriptor.exp - 1) is not None
    assert verify_session_token(token, SECRET, now_ms=descriptor.exp) is None


def test_tampered_payload_is_rejected():
    token = create_session_token(_descriptor(), SECRET)
    _, signature = token.split(".")
    forged = create_session_token(_descriptor(file_size=1), SECRET).split(".")[0]

    assert verify_session_token(f"{forged}.{signature}", SECRET, now_ms=NOW_MS) is None


def test_malformed_tokens_never_raise():
    for token in (None, "", "abc", "a.b.c", ".sig", "payload.", "!!!.???"):
        assert verify_session_token(token, SECRET, now_ms=NOW_MS) is None


def test_signed_payload_missing_fields_is_rejected():
    payload = _b64(json.dumps({"uploadUrl": "https://x", "exp": NOW_MS + 1000}).encode())
    token = f"{payload}.{_b64(_sign(SECRET, payload))}"
    assert verify_session_token(token, SECRET, now_ms=NOW_MS) is None


def test_service_uses_configured_max_age():
    service = SessionTokenService(SECRET, max_age_ms=5_000)
    exp = service.expiry_from(NOW_MS)
    token = service.create(_descriptor(exp=exp))

    assert exp == NOW_MS + 5_000
    assert service.verify(token, now_ms=NOW_MS + 4_999) is not None
    assert service.verify(token, now_ms=NOW_MS + 5_000) is None
