"""
Save change detection.

Finds the newest save archive written since monitoring started and
fingerprints its content so unchanged saves are not uploaded twice.
"""
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import aiofiles

from ..logging import get_logger

logger = get_logger('savebackup.saves.detector')

ARCHIVE_EXTENSION = '.zip'
READ_BLOCK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class SaveCandidate:
    """
    A save archive eligible for upload.

    Attributes:
        path: Full path to the archive
        name: File name
        modified_at: Modification time as Unix timestamp
    """
    path: Path
    name: str
    modified_at: float


class ChangeDetector:
    """
    Detects the latest save archive and whether its content changed.

    Example:
        >>> detector = ChangeDetector()
        >>> candidate = detector.latest(save_dir, since=started_at)
        >>> if candidate:
        ...     fingerprint = await detector.fingerprint(candidate.path)
        ...     changed = detector.should_upload(fingerprint, last_known)
    """

    def __init__(self, extension: str = ARCHIVE_EXTENSION):
        self._extension = extension.lower()

    @property
    def extension(self) -> str:
        return self._extension

    def latest(
        self,
        directory: Union[str, Path],
        since: Optional[float] = None
    ) -> Optional[SaveCandidate]:
        """
        Find the most recently modified archive in a directory.

        Files modified before ``since`` are ignored, so saves that existed
        before monitoring started are never uploaded. Ties on modification
        time go to the first file in name order.

        Args:
            directory: Directory to scan
            since: Unix timestamp; only files modified at or after it qualify

        Returns:
            The latest candidate, or None if there is none or the
            directory cannot be read
        """
        directory = Path(directory)
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.error(f"Error reading save directory {directory}: {e}")
            return None

        best: Optional[SaveCandidate] = None
        for entry in entries:
            if not entry.name.lower().endswith(self._extension):
                continue
            try:
                if not entry.is_file():
                    continue
                mtime = entry.stat().st_mtime
            except OSError as e:
                # Save was removed or replaced while scanning
                logger.debug(f"Skipping {entry.name}: {e}")
                continue

            if since is not None and mtime < since:
                continue
            if best is None or mtime > best.modified_at:
                best = SaveCandidate(path=Path(entry.path), name=entry.name, modified_at=mtime)

        if best:
            logger.debug(f"Latest save: {best.name} (mtime {best.modified_at:.0f})")
        return best

    async def fingerprint(self, path: Union[str, Path]) -> str:
        """
        Compute the MD5 digest of a file's full content.

        Used for change detection only, not for integrity or security.

        Raises:
            OSError: If the file cannot be read
        """
        digest = hashlib.md5()
        async with aiofiles.open(path, 'rb') as f:
            while True:
                block = await f.read(READ_BLOCK_SIZE)
                if not block:
                    break
                digest.update(block)
        return digest.hexdigest()

    @staticmethod
    def should_upload(fingerprint: str, last_known: Optional[str]) -> bool:
        """True when the fingerprint differs from the last uploaded one."""
        return fingerprint != last_known
