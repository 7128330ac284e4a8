"""Upload strategies module."""
from .chunking import BaseChunkingStrategy, FixedSizeChunkingStrategy
from .parallelism import (
    BaseParallelismStrategy,
    SizeTieredParallelismStrategy,
    FixedParallelismStrategy
)

__all__ = [
    'BaseChunkingStrategy',
    'FixedSizeChunkingStrategy',
    'BaseParallelismStrategy',
    'SizeTieredParallelismStrategy',
    'FixedParallelismStrategy',
]
