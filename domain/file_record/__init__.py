"""File record (catalog) domain exports."""
from .entity import FileRecord
from .repository import FileRecordRepository

__all__ = ["FileRecord", "FileRecordRepository"]
