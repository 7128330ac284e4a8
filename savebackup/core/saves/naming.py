"""Upload file naming."""
import re
from datetime import datetime
from typing import Optional

TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'

# Our own suffix, plus the ISO-derived suffix older releases appended
_TIMESTAMP_SUFFIX = re.compile(
    r'_(?:\d{8}_\d{6}|\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}(?:-\d{3})?Z?)$'
)


def strip_timestamp(stem: str) -> str:
    """Remove every trailing timestamp suffix from a file stem."""
    while True:
        stripped = _TIMESTAMP_SUFFIX.sub('', stem)
        if stripped == stem:
            return stem
        stem = stripped


def strip_prefix(stem: str, prefix: Optional[str]) -> str:
    """Remove every leading ``<prefix>_`` token from a file stem."""
    if not prefix:
        return stem
    token = f"{prefix}_"
    while stem.startswith(token):
        stem = stem[len(token):]
    return stem


def format_upload_name(
    name: str,
    prefix: Optional[str] = None,
    now: Optional[datetime] = None,
    extension: str = '.zip'
) -> str:
    """
    Build the remote file name for a save.

    Any timestamp and prefix applied by a previous run are removed first,
    so re-processing an already renamed file never stacks suffixes.

    Example:
        >>> format_upload_name("foo_20230101_120000.zip", "Base",
        ...                    now=datetime(2024, 5, 6, 7, 8, 9))
        'Base_foo_20240506_070809.zip'
    """
    stem = name
    if stem.lower().endswith(extension.lower()):
        stem = stem[:-len(extension)]

    stem = strip_prefix(strip_timestamp(stem), prefix)
    stem = strip_timestamp(stem) or 'save'

    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    if prefix:
        return f"{prefix}_{stem}_{timestamp}{extension}"
    return f"{stem}_{timestamp}{extension}"
