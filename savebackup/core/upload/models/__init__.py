"""Upload models."""
from .upload_models import (
    UploadState,
    PartRange,
    PartResult,
    MultipartSession,
    UploadProgress,
    order_parts
)

__all__ = [
    'UploadState',
    'PartRange',
    'PartResult',
    'MultipartSession',
    'UploadProgress',
    'order_parts'
]
