"""Content-Range header parsing."""
from __future__ import annotations

import re
from typing import Optional

from domain.upload import ContentRange

_CONTENT_RANGE = re.compile(r"^bytes ([0-9]+)-([0-9]+)/([0-9]+)$")


def parse_content_range(value: Optional[str]) -> Optional[ContentRange]:
    """Parse ``bytes <start>-<end>/<total>``; returns None on any deviation."""
    if not value:
        return None
    match = _CONTENT_RANGE.match(value.strip())
    if match is None:
        return None
    start, end, total = (int(g) for g in match.groups())
    if end < start or total <= 0:
        return None
    return ContentRange(start=start, end=end, total=total)
