"""Constants and configuration for the pageflow layout engine."""


class LayoutConstants:
    """Central configuration constants for pagination."""

    # Measurement
    MIN_PARAGRAPH_HEIGHT = 24  # Floor for empty or unmeasurable text blocks (px)
    PIXELS_PER_MM = 96 / 25.4  # CSS reference pixel density
    POINTS_TO_PIXELS = 96 / 72

    # Default typesetting for the font-metrics host
    DEFAULT_FONT_NAME = "Helvetica"
    DEFAULT_FONT_SIZE = 12  # points
    DEFAULT_LINE_SPACING = 1.5

    # Table splitting
    DEFAULT_HEADER_ROWS = 1
    TABLE_GROUP_PREFIX = "table-group-"


class NodeTypes:
    """Node type names used in documents."""

    DOC = "doc"
    PAGE = "page"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    TABLE_HEADER = "table_header"
    TEXT = "text"
    HARD_BREAK = "hard_break"
    IMAGE = "image"

    TEXTBLOCKS = frozenset({PARAGRAPH, HEADING})
    LEAVES = frozenset({HARD_BREAK, IMAGE})
    CELLS = frozenset({TABLE_CELL, TABLE_HEADER})


class PageAttributeKeys:
    """Attribute names stored on page nodes."""

    PAPER_SIZE = "paperSize"
    PAPER_ORIENTATION = "paperOrientation"
    PAPER_COLOUR = "paperColour"
    PAGE_MARGINS = "pageMargins"

    ALL = (PAPER_SIZE, PAPER_ORIENTATION, PAPER_COLOUR, PAGE_MARGINS)


# Table attributes
GROUP_ID_ATTR = "groupId"
HEADER_ROWS_ATTR = "headerRows"
