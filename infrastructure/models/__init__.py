"""Infrastructure models package exports."""
from .base import Base, metadata
from .file_record import FileModel
from .folder import FolderModel

__all__ = [
    "Base",
    "metadata",
    "FileModel",
    "FolderModel",
]
