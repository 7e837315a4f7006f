from __future__ import annotations

from .game_core import RandomSource
from .partition import PartitionNode

DEFAULT_SAMPLE_COUNT = 150


class SimilarityScorer:
    """Monte-Carlo estimate of the area where two partitions agree in color.

    Returns an integer percentage in [0, 100]. Points that fail to resolve to a
    leaf in either tree count as a mismatch.
    """

    def __init__(self, *, rng: RandomSource, samples: int = DEFAULT_SAMPLE_COUNT) -> None:
        if samples <= 0:
            raise ValueError("samples must be > 0")
        self._rng = rng
        self._samples = int(samples)

    @property
    def samples(self) -> int:
        return self._samples

    def check_match(self, player: PartitionNode, target: PartitionNode) -> int:
        matches = 0
        for _ in range(self._samples):
            x = self._rng.random()
            y = self._rng.random()

            p_block = player.find_block_at(x, y)
            t_block = target.find_block_at(x, y)
            if p_block is not None and t_block is not None and p_block.color == t_block.color:
                matches += 1

        # floor(matches / samples * 100) in exact integer arithmetic.
        return matches * 100 // self._samples
