"""Folder domain exports."""
from .entity import Folder
from .repository import FolderRepository

__all__ = ["Folder", "FolderRepository"]
