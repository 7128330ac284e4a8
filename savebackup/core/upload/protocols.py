"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection and strategy pattern.
"""
from typing import Protocol, Tuple
from pathlib import Path

from .models import PartRange, PartResult


class ParallelismStrategy(Protocol):
    """Protocol for choosing the number of concurrent part uploads."""

    def parallelism(self, file_size: int) -> int:
        ...


class PartReaderProtocol(Protocol):
    """Protocol for reading one part of a save."""

    async def read_part(self, file_path: Path, part: PartRange) -> bytes:
        """
        Read the bytes of ``part``.

        Raises:
            SaveBackupError: If the part can't be read in full
        """
        ...


class FileValidatorProtocol(Protocol):
    """Protocol for checking a save before upload."""

    def validate(self, file_path: Path) -> Tuple[Path, int]:
        """
        Returns:
            Tuple of (path, size in bytes)

        Raises:
            FileNotFoundError: If the save doesn't exist
            ValueError: If the save is not a non-empty regular file
        """
        ...


class PartUploaderProtocol(Protocol):
    """Protocol for uploading one part to its presigned URL."""

    async def upload_part(self, part_number: int, url: str, data: bytes) -> PartResult:
        """
        Upload a single part.

        Returns:
            PartResult carrying the part's ETag
        """
        ...
