from __future__ import annotations

import math

from .game_core import RandomSource
from .partition import Axis, MondrianColor, PartitionNode

MAX_DEPTH = 5
SPLIT_CHANCE = 0.7
FORCED_RATIO_RANGE = (0.3, 0.7)
RANDOM_RATIO_RANGE = (0.2, 0.8)

# Weighted by repetition: white/red/blue/yellow x2, black x1.
WEIGHTED_PALETTE: tuple[MondrianColor, ...] = (
    MondrianColor.WHITE,
    MondrianColor.WHITE,
    MondrianColor.RED,
    MondrianColor.RED,
    MondrianColor.BLUE,
    MondrianColor.BLUE,
    MondrianColor.YELLOW,
    MondrianColor.YELLOW,
    MondrianColor.BLACK,
)


def depth_for_level(level: int) -> int:
    if level < 1:
        raise ValueError("level must be >= 1")
    return min(MAX_DEPTH, 1 + math.ceil(level / 2))


class LevelGenerator:
    """Builds target partitions by bounded random splitting and weighted coloring.

    Every random draw goes through the injected source, so a seeded or scripted
    source reproduces the exact same tree.
    """

    def __init__(self, *, rng: RandomSource) -> None:
        self._rng = rng

    def generate_target(self, level: int) -> PartitionNode:
        depth = depth_for_level(level)
        root = PartitionNode.root()

        # The root is always split so the target never shows a single flat color.
        root.split(self._pick_axis(), self._rng.uniform(*FORCED_RATIO_RANGE))
        self._grow(root, depth)
        self._paint(root)
        return root

    def _grow(self, node: PartitionNode, depth: int) -> None:
        if depth <= 0:
            return

        if not node.is_leaf:
            for child in node.children:
                self._grow(child, depth - 1)
            return

        if self._rng.random() >= SPLIT_CHANCE:
            return

        axis = self._pick_axis()
        if node.split(axis, self._rng.uniform(*RANDOM_RATIO_RANGE)):
            for child in node.children:
                self._grow(child, depth - 1)

    def _paint(self, root: PartitionNode) -> None:
        for leaf in root.iter_leaves():
            leaf.set_color(self._rng.choice(WEIGHTED_PALETTE))

    def _pick_axis(self) -> Axis:
        return Axis.HORIZONTAL if self._rng.random() < 0.5 else Axis.VERTICAL
