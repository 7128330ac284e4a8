"""Save discovery: latest archive detection, naming and default locations."""
from .detector import ChangeDetector, SaveCandidate, ARCHIVE_EXTENSION
from .naming import format_upload_name, strip_timestamp, strip_prefix, TIMESTAMP_FORMAT
from .locator import default_save_directory

__all__ = [
    'ChangeDetector',
    'SaveCandidate',
    'ARCHIVE_EXTENSION',
    'format_upload_name',
    'strip_timestamp',
    'strip_prefix',
    'TIMESTAMP_FORMAT',
    'default_save_directory',
]
