"""
Upload module for multipart object-store uploads.

Provides the multipart coordinator and its pluggable pieces: chunking and
parallelism strategies, file reading and part upload services.
"""
from .coordinator import MultipartUploadCoordinator
from .models import (
    UploadState,
    PartRange,
    PartResult,
    MultipartSession,
    UploadProgress,
    order_parts
)
from .protocols import (
    ParallelismStrategy,
    PartReaderProtocol,
    FileValidatorProtocol,
    PartUploaderProtocol
)

__all__ = [
    # Main classes
    'MultipartUploadCoordinator',

    # Models
    'UploadState',
    'PartRange',
    'PartResult',
    'MultipartSession',
    'UploadProgress',
    'order_parts',

    # Protocols
    'ParallelismStrategy',
    'PartReaderProtocol',
    'FileValidatorProtocol',
    'PartUploaderProtocol',
]
