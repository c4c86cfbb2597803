"""Pagination options and their persisted per-document overrides."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from .paper import (
    DEFAULT_MARGIN_CONFIG,
    DEFAULT_PAPER_COLOUR,
    DEFAULT_PAPER_ORIENTATION,
    DEFAULT_PAPER_SIZE,
    DARK_PAPER_COLOUR,
    LIGHT_PAPER_COLOUR,
    MarginConfig,
    PageAttributes,
    has_content_area,
    is_valid_colour,
    is_valid_orientation,
    is_valid_paper_margins,
    is_valid_paper_size,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaginationOptions:
    """Defaults applied to pages that carry no attributes of their own.

    Attributes:
        default_paper_size: Paper size name, e.g. "A4" or "Letter".
        default_paper_colour: Page background colour.
        use_device_theme_for_paper_colour: Pick a light or dark colour from the
            device theme instead of ``default_paper_colour``.
        default_paper_orientation: "portrait" or "landscape".
        default_margin_config: Page margins in millimetres.
    """
    default_paper_size: str = DEFAULT_PAPER_SIZE
    default_paper_colour: str = DEFAULT_PAPER_COLOUR
    use_device_theme_for_paper_colour: bool = False
    default_paper_orientation: str = DEFAULT_PAPER_ORIENTATION
    default_margin_config: MarginConfig = field(default=DEFAULT_MARGIN_CONFIG)

    def __post_init__(self):
        if not is_valid_paper_size(self.default_paper_size):
            raise ValueError(f"Unknown paper size: {self.default_paper_size!r}")
        if not is_valid_orientation(self.default_paper_orientation):
            raise ValueError(f"Unknown paper orientation: {self.default_paper_orientation!r}")
        if not is_valid_colour(self.default_paper_colour):
            raise ValueError(f"Invalid paper colour: {self.default_paper_colour!r}")
        if not is_valid_paper_margins(self.default_margin_config):
            raise ValueError(f"Invalid page margins: {self.default_margin_config!r}")
        if not has_content_area(self.default_page_attributes()):
            raise ValueError("Page margins leave no room for content")

    def paper_colour(self, dark_theme: bool = False) -> str:
        if self.use_device_theme_for_paper_colour:
            return DARK_PAPER_COLOUR if dark_theme else LIGHT_PAPER_COLOUR
        return self.default_paper_colour

    def default_page_attributes(self, dark_theme: bool = False) -> PageAttributes:
        return PageAttributes(
            paper_size=self.default_paper_size,
            paper_orientation=self.default_paper_orientation,
            paper_colour=self.paper_colour(dark_theme),
            page_margins=self.default_margin_config,
        )

    def with_settings(self, settings: Mapping[str, Any]) -> 'PaginationOptions':
        """Overlay persisted settings, ignoring invalid values."""
        changes: dict = {}
        paper_size = settings.get("paper_size")
        if paper_size is not None:
            if is_valid_paper_size(paper_size):
                changes["default_paper_size"] = paper_size
            else:
                logger.warning(f"Ignoring unknown paper size setting: {paper_size!r}")
        orientation = settings.get("paper_orientation")
        if orientation is not None:
            if is_valid_orientation(orientation):
                changes["default_paper_orientation"] = orientation
            else:
                logger.warning(f"Ignoring unknown paper orientation setting: {orientation!r}")
        colour = settings.get("paper_colour")
        if colour is not None:
            if is_valid_colour(colour):
                changes["default_paper_colour"] = colour
            else:
                logger.warning(f"Ignoring invalid paper colour setting: {colour!r}")
        margins = settings.get("page_margins")
        if margins is not None:
            if is_valid_paper_margins(margins):
                changes["default_margin_config"] = MarginConfig.from_dict(margins)
            else:
                logger.warning(f"Ignoring invalid page margins setting: {margins!r}")
        if not changes:
            return self
        try:
            return replace(self, **changes)
        except ValueError as e:
            logger.warning(f"Ignoring persisted page settings: {e}")
            return self

    @classmethod
    def from_settings(cls, document_path: Optional[str], persistence=None) -> 'PaginationOptions':
        """Load options for a document from the settings store."""
        from .settings_persistence import get_persistence

        persistence = persistence or get_persistence()
        return cls().with_settings(persistence.load_settings(document_path))
