"""Drive provider implementations."""
from .onedrive import OneDriveClient

__all__ = ["OneDriveClient"]
