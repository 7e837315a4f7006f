from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class Axis(StrEnum):
    # HORIZONTAL stacks the children top/bottom, VERTICAL places them left/right.
    HORIZONTAL = "h"
    VERTICAL = "v"


class MondrianColor(StrEnum):
    WHITE = "#F0F0F0"
    RED = "#E30022"
    BLUE = "#0078BF"
    YELLOW = "#FFD100"
    BLACK = "#111111"

    @property
    def rgb(self) -> tuple[int, int, int]:
        raw = self.value.lstrip("#")
        return (int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16))


DEFAULT_COLOR = MondrianColor.WHITE


@dataclass(frozen=True, slots=True)
class Rect:
    """Half-open rectangle ``[x, x+width) x [y, y+height)`` in unit-square coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def split(self, axis: Axis, ratio: float) -> tuple["Rect", "Rect"]:
        if axis is Axis.HORIZONTAL:
            h1 = self.height * ratio
            h2 = self.height - h1
            return (
                Rect(self.x, self.y, self.width, h1),
                Rect(self.x, self.y + h1, self.width, h2),
            )
        w1 = self.width * ratio
        w2 = self.width - w1
        return (
            Rect(self.x, self.y, w1, self.height),
            Rect(self.x + w1, self.y, w2, self.height),
        )


UNIT_RECT = Rect(0.0, 0.0, 1.0, 1.0)


@dataclass(frozen=True, slots=True)
class DrawRect:
    """One drawable leaf: unit-square geometry plus its fill color."""

    x: float
    y: float
    width: float
    height: float
    color: MondrianColor

    def to_percent(self) -> tuple[float, float, float, float]:
        return (self.x * 100.0, self.y * 100.0, self.width * 100.0, self.height * 100.0)


class PartitionNode:
    """A rectangle that is either a colored leaf or split into exactly two children.

    Children are owned by their parent. The parent link is a weak reference and
    is only used for upward navigation.
    """

    __slots__ = ("_rect", "_color", "_children", "_axis", "_parent", "__weakref__")

    def __init__(self, rect: Rect, *, parent: PartitionNode | None = None) -> None:
        self._rect = rect
        self._color: MondrianColor = DEFAULT_COLOR
        self._children: tuple[PartitionNode, PartitionNode] | None = None
        self._axis: Axis | None = None
        self._parent = None if parent is None else weakref.ref(parent)

    @classmethod
    def root(cls) -> "PartitionNode":
        """A fresh tree: one unpainted leaf covering the unit square."""
        return cls(UNIT_RECT)

    @property
    def rect(self) -> Rect:
        return self._rect

    @property
    def color(self) -> MondrianColor:
        return self._color

    @property
    def axis(self) -> Axis | None:
        return self._axis

    @property
    def children(self) -> tuple[PartitionNode, PartitionNode] | tuple[()]:
        return () if self._children is None else self._children

    @property
    def is_leaf(self) -> bool:
        return self._children is None

    @property
    def parent(self) -> PartitionNode | None:
        return None if self._parent is None else self._parent()

    @property
    def depth(self) -> int:
        depth = 0
        node = self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def split(self, axis: Axis, ratio: float = 0.5) -> bool:
        """Turn this leaf into an internal node. Returns False without mutating
        if the node is already split or ``ratio`` is not strictly inside (0, 1).
        """

        if self._children is not None:
            return False
        if not (0.0 < ratio < 1.0):
            return False

        first, second = self._rect.split(axis, ratio)
        self._axis = axis
        self._children = (
            PartitionNode(first, parent=self),
            PartitionNode(second, parent=self),
        )
        return True

    def set_color(self, color: MondrianColor) -> bool:
        if self._children is not None:
            return False
        self._color = MondrianColor(color)
        return True

    def find_block_at(self, x: float, y: float) -> PartitionNode | None:
        """Return the leaf under ``(x, y)``, or None if no child contains the point.

        A leaf returns itself unconditionally; callers query the root with a
        point in ``[0, 1) x [0, 1)``.
        """

        node = self
        while node._children is not None:
            for child in node._children:
                if child._rect.contains(x, y):
                    node = child
                    break
            else:
                if 0.0 <= x < 1.0 and 0.0 <= y < 1.0:
                    logger.warning("point (%r, %r) did not resolve to a leaf", x, y)
                return None
        return node

    def iter_leaves(self) -> Iterator[PartitionNode]:
        """Depth-first leaves, first child before second."""

        stack: list[PartitionNode] = [self]
        while stack:
            node = stack.pop()
            if node._children is None:
                yield node
                continue
            first, second = node._children
            stack.append(second)
            stack.append(first)

    def draw_rects(self) -> Iterator[DrawRect]:
        for leaf in self.iter_leaves():
            r = leaf._rect
            yield DrawRect(x=r.x, y=r.y, width=r.width, height=r.height, color=leaf._color)

    def to_dict(self) -> dict[str, object]:
        if self._children is None:
            return {"color": self._color.value}
        assert self._axis is not None
        return {
            "split": self._axis.value,
            "children": [child.to_dict() for child in self._children],
        }

    def __repr__(self) -> str:
        r = self._rect
        kind = f"color={self._color.name}" if self._children is None else f"axis={self._axis}"
        return f"PartitionNode(x={r.x:.3f}, y={r.y:.3f}, w={r.width:.3f}, h={r.height:.3f}, {kind})"
