"""Drive data transfer objects."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileFacet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class DriveItem(BaseModel):
    """Subset of a Graph driveItem the relay cares about."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    size: int = 0
    last_modified: Optional[str] = Field(default=None, alias="lastModifiedDateTime")
    file: Optional[FileFacet] = None
    download_url: Optional[str] = Field(default=None, alias="@microsoft.graph.downloadUrl")

    @property
    def is_file(self) -> bool:
        return self.file is not None

    @property
    def mime_type(self) -> Optional[str]:
        return self.file.mime_type if self.file else None


class ChunkUploadResult(BaseModel):
    """Outcome of one chunk PUT against an upload session."""

    done: bool
    next_expected_ranges: list[str] = Field(default_factory=list)
    item: Optional[DriveItem] = None
