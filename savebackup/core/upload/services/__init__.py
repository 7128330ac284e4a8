"""Upload services module."""
from .file_service import SaveArchiveValidator, PartReader
from .part_service import PartUploader

__all__ = [
    'SaveArchiveValidator',
    'PartReader',
    'PartUploader',
]
