"""
Chunking strategies for multipart uploads.

Implements Strategy Pattern for part layout.
Open for extension (new strategies), closed for modification.
"""
import math
from abc import ABC, abstractmethod
from typing import List

from ..models import PartRange


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def calculate_parts(self, file_size: int) -> List[PartRange]:
        """Calculate part boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.

    Part ``n`` covers ``[(n - 1) * chunk_size, min(n * chunk_size, file_size))``.
    The provider chooses the chunk size at session init.
    """

    DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024  # 4MB

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.

        Args:
            chunk_size: Size of each part in bytes
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.chunk_size = chunk_size

    def count_parts(self, file_size: int) -> int:
        """Returns ceil(file_size / chunk_size)."""
        if file_size <= 0:
            return 0
        return math.ceil(file_size / self.chunk_size)

    def part_range(self, part_number: int, file_size: int) -> PartRange:
        """
        Byte range for a single 1-based part number.

        Raises:
            ValueError: If the part number is outside the file
        """
        if part_number < 1 or part_number > self.count_parts(file_size):
            raise ValueError(f"Part {part_number} is out of range for {file_size} bytes")
        start = (part_number - 1) * self.chunk_size
        end = min(start + self.chunk_size, file_size)
        return PartRange(part_number=part_number, start=start, end=end)

    def calculate_parts(self, file_size: int) -> List[PartRange]:
        """
        Calculate fixed-size part boundaries.

        Args:
            file_size: Total file size in bytes

        Returns:
            List of PartRange, ordered by part number
        """
        return [
            self.part_range(n, file_size)
            for n in range(1, self.count_parts(file_size) + 1)
        ]
