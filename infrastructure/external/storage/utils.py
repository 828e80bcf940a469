"""Drive path, chunk size and payload helpers."""
import base64
import binascii
import re
from typing import Optional
from urllib.parse import quote

from domain.common.exceptions import SizeMismatchException

# Graph 要求分片大小为 320 KiB 的整数倍
CHUNK_BASE = 320 * 1024
DEFAULT_CHUNK_MULTIPLIER = 10
MAX_CHUNK_BYTES = 100 * 1024 * 1024

_DATA_URL_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
# encodeURIComponent 不转义的字符
_SEGMENT_SAFE = "!'()*"


def join_drive_path(*parts: Optional[str]) -> str:
    """Join path fragments, dropping empty segments."""
    segments: list[str] = []
    for part in parts:
        if not part:
            continue
        segments.extend(s for s in part.split("/") if s)
    return "/".join(segments)


def encode_drive_path(*parts: Optional[str]) -> str:
    """Percent-encode each segment independently so separators survive."""
    return "/".join(
        quote(segment, safe=_SEGMENT_SAFE) for segment in join_drive_path(*parts).split("/") if segment
    )


def max_chunk_multiplier(base: int = CHUNK_BASE, max_bytes: int = MAX_CHUNK_BYTES) -> int:
    return max(1, max_bytes // base)


def resolve_chunk_size(
    multiplier: Optional[float] = None,
    *,
    base: int = CHUNK_BASE,
    default_multiplier: int = DEFAULT_CHUNK_MULTIPLIER,
    max_bytes: int = MAX_CHUNK_BYTES,
) -> int:
    """Chunk size in bytes for a requested multiplier of ``base``.

    ``None`` picks the default multiplier; anything else is floored and clamped
    to ``[1, max_bytes // base]``.
    """
    raw = default_multiplier if multiplier is None else int(multiplier)
    clamped = max(1, min(max_chunk_multiplier(base, max_bytes), raw))
    return clamped * base


def _decode_base64_text(data: bytes) -> Optional[bytes]:
    text = data.decode("utf-8").strip()
    text = _DATA_URL_PREFIX.sub("", text, count=1)
    if not text:
        return None
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded or None


def normalize_payload(data: bytes, declared_size: int, sniff: bool = True) -> bytes:
    """Return the bytes that should actually be stored.

    A pure-ASCII body that decodes as base64 (optionally wrapped in a
    ``data:...;base64,`` prefix) is replaced by its decoded form. Otherwise the
    body is used as-is and must match ``declared_size``.
    """
    if sniff and data and data.isascii():
        decoded = _decode_base64_text(data)
        if decoded is not None:
            return decoded
    if len(data) != declared_size:
        raise SizeMismatchException(declared=declared_size, actual=len(data))
    return data
