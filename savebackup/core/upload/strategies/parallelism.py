"""Part upload parallelism strategies."""
from abc import ABC, abstractmethod
from typing import Sequence, Tuple

GB = 1024 ** 3


class BaseParallelismStrategy(ABC):
    """Abstract base class for choosing concurrent part uploads."""

    @abstractmethod
    def parallelism(self, file_size: int) -> int:
        """Number of parts uploaded concurrently for a file."""
        pass


class SizeTieredParallelismStrategy(BaseParallelismStrategy):
    """
    Fewer concurrent streams for larger files.

    Very large uploads run for a long time and share the uplink with
    everything else, so they open fewer connections.
    """

    # (exclusive lower bound in bytes, parallelism), largest first
    DEFAULT_TIERS: Tuple[Tuple[int, int], ...] = (
        (50 * GB, 3),
        (10 * GB, 4),
        (1 * GB, 5),
    )
    DEFAULT_PARALLELISM = 6

    def __init__(
        self,
        tiers: Sequence[Tuple[int, int]] = DEFAULT_TIERS,
        default: int = DEFAULT_PARALLELISM
    ):
        self._tiers = sorted(tiers, key=lambda t: t[0], reverse=True)
        self._default = default

    def parallelism(self, file_size: int) -> int:
        for threshold, width in self._tiers:
            if file_size > threshold:
                return width
        return self._default


class FixedParallelismStrategy(BaseParallelismStrategy):
    """Constant parallelism, regardless of file size."""

    def __init__(self, width: int):
        if width <= 0:
            raise ValueError("Parallelism must be positive")
        self._width = width

    def parallelism(self, file_size: int) -> int:
        return self._width
