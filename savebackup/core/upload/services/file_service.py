"""
Save archive checks and part reads.

The validator runs before any request is made; the reader serves the
byte range of one part to the coordinator.
"""
from pathlib import Path
from typing import Tuple, Union
import aiofiles

from ...exceptions import SaveBackupError
from ...logging import get_logger
from ..models import PartRange


class SaveArchiveValidator:
    """
    Rejects saves that cannot be uploaded.

    A missing path, a directory or an empty archive fails here instead
    of after a remote upload session has been opened.
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Check a save archive before upload.

        Returns:
            Tuple of (path, size in bytes)

        Raises:
            FileNotFoundError: If the save no longer exists
            ValueError: If the path is not a regular file or the archive is empty
        """
        path = Path(file_path)

        try:
            stat = path.stat()
        except FileNotFoundError:
            raise FileNotFoundError(f"Save not found: {path}") from None

        if not path.is_file():
            raise ValueError(f"Save path is not a file: {path}")
        if stat.st_size == 0:
            raise ValueError(f"Save archive is empty: {path.name}")

        return path, stat.st_size


class PartReader:
    """
    Reads the bytes of one multipart part with aiofiles.

    Each read opens its own handle, so parts in the same window never
    share a file position.
    """

    def __init__(self):
        self._logger = get_logger('savebackup.upload.file')

    async def read_part(self, file_path: Path, part: PartRange) -> bytes:
        """
        Read exactly ``part.size`` bytes starting at ``part.start``.

        Raises:
            SaveBackupError: If the file can't be read or ends before the part does
        """
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                await f.seek(part.start)
                data = await f.read(part.size)
        except OSError as e:
            raise SaveBackupError(f"Failed to read part {part.part_number}: {e}") from e

        if len(data) != part.size:
            # Save was truncated after the upload session was opened
            raise SaveBackupError(
                f"Part {part.part_number} is short: read {len(data)} of {part.size} bytes "
                f"at {part.start}"
            )

        self._logger.debug(f"Read part {part.part_number}: {part.start}-{part.end}")
        return data
