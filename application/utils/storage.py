"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

import mimetypes
from typing import Optional


def guess_content_type(filename: str, fallback: Optional[str] = None) -> str:
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or fallback or "application/octet-stream"


def split_folder_path(path: Optional[str]) -> list[str]:
    """Split ``a/ b //c`` into ``["a", "b", "c"]``."""
    if not path:
        return []
    return [segment.strip() for segment in path.split("/") if segment.strip()]
