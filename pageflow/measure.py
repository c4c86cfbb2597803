"""Height measurement of content blocks.

The paginator never lays text out itself. It asks a :class:`LayoutHost` for
the rendered height of each block and applies a minimum-height floor so that
empty blocks never collapse to nothing during packing.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from reportlab.pdfbase import pdfmetrics

from .constants import LayoutConstants, NodeTypes
from .model import Node

logger = logging.getLogger(__name__)


class LayoutHost(ABC):
    """Source of rendered block heights."""

    @abstractmethod
    def box_height(self, node: Node, pos: int) -> Optional[float]:
        """Return the rendered height of ``node`` starting at ``pos``.

        Returns None when the host has no box for that node.
        """
        pass

    def row_heights(self, table: Node, pos: int) -> Optional[List[float]]:
        """Return the rendered height of every row of ``table``."""
        heights = []
        row_pos = pos + 1
        for row in table.content:
            height = self.box_height(row, row_pos)
            if height is None:
                return None
            heights.append(height)
            row_pos += row.node_size
        return heights


def wrap_text(text: str, max_width: float, width_of: Callable[[str], float]) -> List[str]:
    """Greedy word wrap into lines no wider than ``max_width``.

    Words wider than a full line are broken across as many lines as needed.
    """
    if not text:
        return [""]

    lines: List[str] = []
    current_line: Optional[str] = None

    def break_word(word: str) -> str:
        # Emit full-width chunks, return the tail that still needs a line
        while width_of(word) > max_width and len(word) > 1:
            cut = len(word) - 1
            while cut > 1 and width_of(word[:cut]) > max_width:
                cut -= 1
            lines.append(word[:cut])
            word = word[cut:]
        return word

    for paragraph_line in text.split("\n"):
        current_line = None
        for word in paragraph_line.split(" "):
            if current_line is None:
                current_line = break_word(word)
            elif width_of(current_line + " " + word) <= max_width:
                current_line += " " + word
            else:
                lines.append(current_line)
                current_line = break_word(word)
        lines.append(current_line or "")
    return lines


class FontMetricsLayoutHost(LayoutHost):
    """Lays out text with reportlab font metrics to estimate rendered heights.

    Text blocks wrap to ``content_width`` pixels; table rows are as tall as
    their tallest cell, each cell getting an equal share of the width.
    """

    def __init__(self,
                 content_width: float,
                 font_name: str = LayoutConstants.DEFAULT_FONT_NAME,
                 font_size: float = LayoutConstants.DEFAULT_FONT_SIZE,
                 line_spacing: float = LayoutConstants.DEFAULT_LINE_SPACING):
        if content_width <= 0:
            raise ValueError(f"Content width must be positive, got {content_width}")
        self.content_width = content_width
        self.font_name = font_name
        self.font_size = font_size
        self.line_spacing = line_spacing
        # Validates the font name early; raises KeyError for unknown fonts
        pdfmetrics.getFont(font_name)

    @property
    def line_height(self) -> float:
        return self.font_size * LayoutConstants.POINTS_TO_PIXELS * self.line_spacing

    def text_width(self, value: str) -> float:
        points = pdfmetrics.stringWidth(value, self.font_name, self.font_size)
        return points * LayoutConstants.POINTS_TO_PIXELS

    def _block_text(self, node: Node) -> str:
        parts = []
        for child in node.content:
            if child.is_text:
                parts.append(child.text)
            elif child.type == NodeTypes.HARD_BREAK:
                parts.append("\n")
        return "".join(parts)

    def height_at_width(self, node: Node, width: float) -> float:
        if node.is_textblock:
            if node.is_empty:
                return 0.0
            lines = wrap_text(self._block_text(node), width, self.text_width)
            return len(lines) * self.line_height
        if node.type == NodeTypes.TABLE:
            return sum(self._row_height(row, width) for row in node.content)
        if node.type == NodeTypes.TABLE_ROW:
            return self._row_height(node, width)
        if node.is_leaf:
            return self.line_height
        return sum(self.height_at_width(child, width) for child in node.content)

    def _row_height(self, row: Node, width: float) -> float:
        if not row.content:
            return 0.0
        cell_width = width / row.child_count
        return max(self.height_at_width(cell, cell_width) for cell in row.content)

    def box_height(self, node: Node, pos: int) -> Optional[float]:
        return self.height_at_width(node, self.content_width)


class StaticLayoutHost(LayoutHost):
    """Layout host answering from fixed per-type heights.

    A node's own ``height`` attribute wins over the per-type table. Tables
    are the sum of their rows. Types with no entry report no box.
    """

    def __init__(self, heights: Optional[Mapping[str, float]] = None, default: Optional[float] = None):
        self.heights = dict(heights or {})
        self.default = default

    def box_height(self, node: Node, pos: int) -> Optional[float]:
        if "height" in node.attrs:
            return node.attrs["height"]
        if node.type == NodeTypes.TABLE and node.type not in self.heights:
            rows = self.row_heights(node, pos)
            return None if rows is None else sum(rows)
        return self.heights.get(node.type, self.default)


def _is_text_bearing(node: Node) -> bool:
    return node.is_textblock or (node.is_block and all(child.is_inline for child in node.content))


class HeightMeasurer:
    """Applies the minimum-height policy on top of a layout host."""

    def __init__(self, host: LayoutHost, min_height: float = LayoutConstants.MIN_PARAGRAPH_HEIGHT):
        self.host = host
        self.min_height = min_height

    def measure(self, node: Node, pos: int) -> float:
        height = self.host.box_height(node, pos)
        if height is None:
            logger.debug(f"No box for {node.type} at {pos}, using minimum height")
            return self.min_height
        if height == 0 and _is_text_bearing(node):
            return self.min_height
        return height

    def measure_all(self, entries: Iterable) -> List[float]:
        """Measure every ``ContentEntry`` (anything with ``node`` and ``original_position``)."""
        return [self.measure(entry.node, entry.original_position) for entry in entries]

    def row_heights(self, table: Node, pos: int) -> List[float]:
        """Row heights for a table; unmeasurable rows fall back to their node size."""
        heights: Optional[Sequence[float]] = self.host.row_heights(table, pos)
        if heights is None or len(heights) != table.child_count:
            return [float(row.node_size) for row in table.content]
        return [h if h else float(row.node_size) for h, row in zip(heights, table.content)]
