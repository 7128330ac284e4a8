"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List

from ...exceptions import ProtocolError


class UploadState(str, Enum):
    """Multipart upload lifecycle."""
    INIT = 'init'
    URLS_ACQUIRED = 'urls_acquired'
    PARTS_UPLOADING = 'parts_uploading'
    FINALIZING = 'finalizing'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class PartRange:
    """
    Byte range of one multipart part.

    Attributes:
        part_number: 1-based part number
        start: Start position in bytes (inclusive)
        end: End position in bytes (exclusive)
    """
    part_number: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns part size."""
        return self.end - self.start


@dataclass(frozen=True)
class PartResult:
    """
    Proof of receipt for one uploaded part.

    Attributes:
        part_number: 1-based part number
        etag: ETag returned by the object store, without quotes
    """
    part_number: int
    etag: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the provider's completion payload format."""
        return {'partNumber': self.part_number, 'etag': self.etag}


@dataclass
class MultipartSession:
    """
    Remote multipart upload session.

    Lives for the duration of a single file upload and is never persisted.

    Attributes:
        upload_id: Provider upload ID
        object_key: Provider object key
        chunk_size: Part size in bytes
        total_parts: Number of parts
        part_urls: Presigned PUT URL per part number
    """
    upload_id: str
    object_key: str
    chunk_size: int
    total_parts: int
    part_urls: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_init_response(cls, data: Dict[str, Any]) -> 'MultipartSession':
        """
        Create from the provider's init response.

        Raises:
            ProtocolError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise ProtocolError(f"Unexpected init response: {data!r}")
        missing = [k for k in ('uploadId', 'key', 'chunkSize', 'totalParts') if data.get(k) in (None, '')]
        if missing:
            raise ProtocolError(
                data.get('error') or f"Init response missing fields: {', '.join(missing)}"
            )
        try:
            chunk_size = int(data['chunkSize'])
            total_parts = int(data['totalParts'])
        except (TypeError, ValueError):
            raise ProtocolError(f"Invalid chunk size or part count in init response: {data!r}") from None
        if chunk_size <= 0 or total_parts <= 0:
            raise ProtocolError(f"Invalid chunk size or part count in init response: {data!r}")

        return cls(
            upload_id=str(data['uploadId']),
            object_key=str(data['key']),
            chunk_size=chunk_size,
            total_parts=total_parts,
        )

    def set_part_urls(self, urls: Any) -> None:
        """
        Store presigned URLs from a batch-urls response.

        Accepts a mapping keyed by part number (JSON object keys are strings)
        or a list where ``urls[n]`` is the URL of part ``n``.

        Raises:
            ProtocolError: If any part in [1, total_parts] has no URL
        """
        if isinstance(urls, dict):
            parsed = {}
            for key, url in urls.items():
                try:
                    parsed[int(key)] = url
                except (TypeError, ValueError):
                    raise ProtocolError(f"Invalid part number in presigned URLs: {key!r}") from None
        elif isinstance(urls, list):
            # Indexed by part number; slot 0 is unused
            parsed = {index: url for index, url in enumerate(urls) if index > 0}
        else:
            raise ProtocolError(f"Unexpected presigned URL payload: {type(urls).__name__}")

        missing = [n for n in range(1, self.total_parts + 1) if not parsed.get(n)]
        if missing:
            raise ProtocolError(f"Missing presigned URLs for parts: {missing}")
        self.part_urls = parsed


@dataclass
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        total_parts: Total number of parts
        uploaded_parts: Number of uploaded parts
        total_bytes: Total file size
        uploaded_bytes: Bytes uploaded so far
    """
    total_parts: int
    uploaded_parts: int = 0
    total_bytes: int = 0
    uploaded_bytes: int = 0

    @property
    def fraction(self) -> float:
        """Returns completed parts over total parts."""
        if self.total_parts == 0:
            return 0.0
        return self.uploaded_parts / self.total_parts

    @property
    def percentage(self) -> float:
        """Returns upload progress as percentage."""
        return self.fraction * 100

    @property
    def is_complete(self) -> bool:
        """Returns True if upload is complete."""
        return self.uploaded_parts >= self.total_parts


def order_parts(parts: List[PartResult], total_parts: int) -> List[PartResult]:
    """
    Sort part results by part number and check completeness.

    Raises:
        ProtocolError: If any part number is missing or duplicated
    """
    ordered = sorted(parts, key=lambda p: p.part_number)
    numbers = [p.part_number for p in ordered]
    expected = list(range(1, total_parts + 1))
    if numbers != expected:
        missing = sorted(set(expected) - set(numbers))
        duplicated = sorted({n for n in numbers if numbers.count(n) > 1})
        raise ProtocolError(
            f"Cannot finalize: missing parts {missing}, duplicated parts {duplicated}"
        )
    return ordered
