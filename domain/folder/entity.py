"""Folder entity for the logical catalog hierarchy."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from domain.common.exceptions import DomainValidationException


@dataclass
class Folder:
    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        if not self.name:
            raise DomainValidationException("name is required", field="name")
        if "/" in self.name:
            raise DomainValidationException("folder name cannot contain '/'", field="name")
