"""Paper sizes, orientations, margins and content-area dimensions.

All paper dimensions and margins are in millimetres. Content-area budgets
used by the paginator are in CSS pixels.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .constants import LayoutConstants, PageAttributeKeys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaperDimensions:
    """Width and height of a sheet in millimetres."""
    width: float
    height: float

    def flipped(self) -> 'PaperDimensions':
        return PaperDimensions(width=self.height, height=self.width)


def _dims(table: Dict[str, tuple]) -> Dict[str, PaperDimensions]:
    return {name: PaperDimensions(w, h) for name, (w, h) in table.items()}


A_PAPER_SIZES = _dims({
    "A0": (841, 1189), "A1": (594, 841), "A2": (420, 594), "A3": (297, 420),
    "A4": (210, 297), "A5": (148, 210), "A6": (105, 148), "A7": (74, 105),
    "A8": (52, 74), "A9": (37, 52), "A10": (26, 37), "A11": (18, 26),
    "A12": (13, 18), "A13": (9, 13), "2A0": (1189, 1682), "4A0": (1682, 2378),
    "A0+": (914, 1292), "A1+": (609, 914), "A3+": (329, 483),
})

B_PAPER_SIZES = _dims({
    "B0": (1000, 1414), "B1": (707, 1000), "B2": (500, 707), "B3": (353, 500),
    "B4": (250, 353), "B5": (176, 250), "B6": (125, 176), "B7": (88, 125),
    "B8": (62, 88), "B9": (44, 62), "B10": (31, 44), "B11": (22, 31),
    "B12": (15, 22), "B13": (11, 15), "B0+": (1118, 1580), "B1+": (720, 1020),
    "B2+": (520, 720),
})

C_PAPER_SIZES = _dims({
    "C0": (917, 1297), "C1": (648, 917), "C2": (458, 648), "C3": (324, 458),
    "C4": (229, 324), "C5": (162, 229), "C6": (114, 162), "C7": (81, 114),
    "C8": (57, 81), "C9": (40, 57), "C10": (28, 40),
})

US_PAPER_SIZES = _dims({
    "Letter": (216, 279), "Legal": (216, 356), "Tabloid": (279, 432),
    "Ledger": (432, 279), "Junior Legal": (127, 203), "Half Letter": (140, 216),
    "Government Letter": (203, 267), "Government Legal": (216, 330),
    "ANSI A": (216, 279), "ANSI B": (279, 432), "ANSI C": (432, 559),
    "ANSI D": (559, 864), "ANSI E": (864, 1118), "Arch A": (229, 305),
    "Arch B": (305, 457), "Arch C": (457, 610), "Arch D": (610, 914),
    "Arch E": (914, 1219), "Arch E1": (762, 1067), "Arch E2": (660, 965),
    "Arch E3": (686, 991),
})

PAPER_DIMENSIONS: Dict[str, PaperDimensions] = {
    **A_PAPER_SIZES,
    **B_PAPER_SIZES,
    **C_PAPER_SIZES,
    **US_PAPER_SIZES,
}

DEFAULT_PAPER_SIZE = "A4"

LIGHT_PAPER_COLOUR = "#fff"
DARK_PAPER_COLOUR = "#222"
DEFAULT_PAPER_COLOUR = LIGHT_PAPER_COLOUR

PORTRAIT = "portrait"
LANDSCAPE = "landscape"
PAPER_ORIENTATIONS = (PORTRAIT, LANDSCAPE)
DEFAULT_PAPER_ORIENTATION = PORTRAIT

MARGIN_SIDES = ("top", "right", "bottom", "left")
# Shorthand sides accepted by margin setters
MARGIN_SIDE_GROUPS = {
    "top": ("top",),
    "right": ("right",),
    "bottom": ("bottom",),
    "left": ("left",),
    "x": ("left", "right"),
    "y": ("top", "bottom"),
    "all": MARGIN_SIDES,
}


@dataclass(frozen=True)
class MarginConfig:
    """Page margins in millimetres."""
    top: float
    right: float
    bottom: float
    left: float

    def to_dict(self) -> Dict[str, float]:
        return {"top": self.top, "right": self.right, "bottom": self.bottom, "left": self.left}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MarginConfig':
        return cls(**{side: float(data[side]) for side in MARGIN_SIDES})


COMMON_MARGIN_CONFIGS: Dict[str, MarginConfig] = {
    "normal": MarginConfig(top=25.4, right=25.4, bottom=25.4, left=25.4),
    "narrow": MarginConfig(top=12.7, right=12.7, bottom=12.7, left=12.7),
    "moderate": MarginConfig(top=25.4, right=19.1, bottom=25.4, left=19.1),
    "wide": MarginConfig(top=25.4, right=50.8, bottom=25.4, left=50.8),
}

DEFAULT_PAGE_MARGIN_NAME = "normal"
DEFAULT_MARGIN_CONFIG = COMMON_MARGIN_CONFIGS[DEFAULT_PAGE_MARGIN_NAME]


def is_valid_paper_size(paper_size: Any) -> bool:
    return isinstance(paper_size, str) and paper_size in PAPER_DIMENSIONS


def is_valid_orientation(orientation: Any) -> bool:
    return orientation in PAPER_ORIENTATIONS


def is_valid_colour(colour: Any) -> bool:
    """Accept CSS-style hex colours (#rgb, #rrggbb) and plain colour names."""
    if not isinstance(colour, str) or not colour:
        return False
    if colour.startswith("#"):
        digits = colour[1:]
        return len(digits) in (3, 4, 6, 8) and all(c in "0123456789abcdefABCDEF" for c in digits)
    return colour.isalpha()


def is_margin_valid(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def is_valid_paper_margins(margins: Any) -> bool:
    if isinstance(margins, MarginConfig):
        margins = margins.to_dict()
    if not isinstance(margins, Mapping):
        return False
    return all(side in margins and is_margin_valid(margins[side]) for side in MARGIN_SIDES)


def get_paper_dimensions(paper_size: str, orientation: str = PORTRAIT) -> PaperDimensions:
    """Return the sheet dimensions for a paper size and orientation.

    Unknown paper sizes fall back to the default paper size.
    """
    if not is_valid_paper_size(paper_size):
        paper_size = DEFAULT_PAPER_SIZE
    dimensions = PAPER_DIMENSIONS[paper_size]
    if orientation == LANDSCAPE:
        return dimensions.flipped()
    return dimensions


def mm_to_pixels(mm: float) -> float:
    return mm * LayoutConstants.PIXELS_PER_MM


@dataclass(frozen=True)
class PageAttributes:
    """Resolved attributes of a single page."""
    paper_size: str = DEFAULT_PAPER_SIZE
    paper_orientation: str = DEFAULT_PAPER_ORIENTATION
    paper_colour: str = DEFAULT_PAPER_COLOUR
    page_margins: MarginConfig = field(default=DEFAULT_MARGIN_CONFIG)

    def to_node_attrs(self) -> Dict[str, Any]:
        """Attribute mapping to stamp onto a page node."""
        return {
            PageAttributeKeys.PAPER_SIZE: self.paper_size,
            PageAttributeKeys.PAPER_ORIENTATION: self.paper_orientation,
            PageAttributeKeys.PAPER_COLOUR: self.paper_colour,
            PageAttributeKeys.PAGE_MARGINS: self.page_margins.to_dict(),
        }

    @classmethod
    def from_node_attrs(cls, attrs: Mapping[str, Any], defaults: Optional['PageAttributes'] = None) -> 'PageAttributes':
        """Build attributes from a page node's attrs, filling gaps from ``defaults``."""
        defaults = defaults or cls()
        paper_size = attrs.get(PageAttributeKeys.PAPER_SIZE)
        orientation = attrs.get(PageAttributeKeys.PAPER_ORIENTATION)
        colour = attrs.get(PageAttributeKeys.PAPER_COLOUR)
        margins = attrs.get(PageAttributeKeys.PAGE_MARGINS)
        return cls(
            paper_size=paper_size if is_valid_paper_size(paper_size) else defaults.paper_size,
            paper_orientation=orientation if is_valid_orientation(orientation) else defaults.paper_orientation,
            paper_colour=colour if is_valid_colour(colour) else defaults.paper_colour,
            page_margins=(MarginConfig.from_dict(margins) if is_valid_paper_margins(margins)
                          else defaults.page_margins),
        )


@dataclass(frozen=True)
class PageContentDimensions:
    """Usable content area of a page in pixels."""
    content_width: float
    content_height: float


def content_area_mm(paper_size: str, orientation: str, margins: MarginConfig) -> PaperDimensions:
    """Paper minus margins in millimetres; either side may come out negative."""
    paper = get_paper_dimensions(paper_size, orientation)
    return PaperDimensions(width=paper.width - (margins.left + margins.right),
                           height=paper.height - (margins.top + margins.bottom))


def has_content_area(attributes: PageAttributes) -> bool:
    """Whether the margins leave any room for content on the paper."""
    area = content_area_mm(attributes.paper_size, attributes.paper_orientation, attributes.page_margins)
    return area.width > 0 and area.height > 0


def calculate_page_content_pixel_dimensions(attributes: PageAttributes) -> PageContentDimensions:
    """Calculate the content area of a page: paper minus margins, in pixels.

    Margins wider than the paper give a zero-sized area rather than a
    negative one.
    """
    area = content_area_mm(attributes.paper_size, attributes.paper_orientation, attributes.page_margins)
    if area.width <= 0 or area.height <= 0:
        logger.warning(f"Margins leave no content area on {attributes.paper_size} {attributes.paper_orientation}")
    return PageContentDimensions(
        content_width=mm_to_pixels(max(area.width, 0.0)),
        content_height=mm_to_pixels(max(area.height, 0.0)),
    )
