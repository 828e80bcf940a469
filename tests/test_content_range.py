import pytest

from application.utils.content_range import parse_content_range


@pytest.mark.parametrize(
    "header, expected",
    [
        ("bytes 0-9/100", (0, 9, 100)),
        ("  bytes 0-0/1 ", (0, 0, 1)),
        ("bytes 3276800-6553599/10485760", (3276800, 6553599, 10485760)),
    ],
)
def test_valid_headers(header, expected):
    parsed = parse_content_range(header)
    assert parsed is not None
    assert (parsed.start, parsed.end, parsed.total) == expected


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "bytes 9-0/100",
        "bytes 0-9/0",
        "bytes 0-9/*",
        "bytes=0-9/100",
        "items 0-9/100",
        "bytes -1-9/100",
        "bytes 0-9",
    ],
)
def test_invalid_headers(header):
    assert parse_content_range(header) is None


def test_length_and_final_flag():
    parsed = parse_content_range("bytes 90-99/100")
    assert parsed.length == 10
    assert parsed.is_final
    assert parsed.header_value() == "bytes 90-99/100"
    assert not parse_content_range("bytes 0-9/100").is_final
