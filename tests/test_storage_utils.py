import base64

import pytest

from application.utils.storage import guess_content_type, split_folder_path
from domain.common.exceptions import SizeMismatchException
from infrastructure.external.storage.utils import (
    CHUNK_BASE,
    encode_drive_path,
    join_drive_path,
    normalize_payload,
    resolve_chunk_size,
)


@pytest.mark.parametrize(
    "multiplier, expected",
    [
        (None, 10 * CHUNK_BASE),
        (0, 1 * CHUNK_BASE),
        (-5, 1 * CHUNK_BASE),
        (1, 1 * CHUNK_BASE),
        (2.9, 2 * CHUNK_BASE),
        (320, 320 * CHUNK_BASE),
        (100000, 320 * CHUNK_BASE),
    ],
)
def test_resolve_chunk_size(multiplier, expected):
    assert resolve_chunk_size(multiplier) == expected


def test_chunk_size_is_always_a_multiple_of_base():
    for multiplier in (None, 0, 7, 321):
        assert resolve_chunk_size(multiplier) % CHUNK_BASE == 0


def test_join_drive_path_drops_empty_segments():
    assert join_drive_path("/relay/", None, "", "cache//k1") == "relay/cache/k1"
    assert join_drive_path(None) == ""


def test_encode_drive_path_keeps_separators():
    assert encode_drive_path("relay", "a b/c?d.txt") == "relay/a%20b/c%3Fd.txt"
    assert encode_drive_path("relay", "it's (1)!.txt") == "relay/it's%20(1)!.txt"


def test_plain_binary_payload_must_match_declared_size():
    data = bytes(range(256))
    assert normalize_payload(data, 256) == data
    with pytest.raises(SizeMismatchException):
        normalize_payload(data, 255)


def test_base64_payload_is_decoded_regardless_of_declared_size():
    raw = b"\x00\x01binary payload\xff"
    encoded = base64.b64encode(raw)

    assert normalize_payload(encoded, len(raw)) == raw
    assert normalize_payload(b"data:application/octet-stream;base64," + encoded, 0) == raw


def test_sniffing_can_be_disabled():
    encoded = base64.b64encode(b"hello")
    assert normalize_payload(encoded, len(encoded), sniff=False) == encoded


def test_ascii_text_that_is_not_base64_is_kept():
    text = b"hello, world\n"
    assert normalize_payload(text, len(text)) == text


def test_guess_content_type():
    assert guess_content_type("report.pdf") == "application/pdf"
    assert guess_content_type("noext", fallback="application/octet-stream") == "application/octet-stream"


def test_split_folder_path():
    assert split_folder_path(" /docs//2024/ ") == ["docs", "2024"]
    assert split_folder_path(None) == []
    assert split_folder_path("  ") == []
