"""Upload session value objects."""
from .session import ContentRange, UploadSessionDescriptor

__all__ = ["ContentRange", "UploadSessionDescriptor"]
