"""
ThumbnailGuard - Decides whether a thumbnail may be (re)generated for a source file.
"""

import logging
from typing import Optional

from .filter_config import FilterConfig
from .item_record import Bitstream, THUMBNAIL_BUNDLE


class ThumbnailGuard:
    """
    Protects custom (librarian-supplied) thumbnails from being overwritten.

    A thumbnail is replaceable when its description is absent or empty,
    equals the generated-thumbnail label, or fully matches the configured
    replace pattern. Anything else is a custom thumbnail.
    """

    def __init__(self, config: FilterConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize guard.

        Args:
            config: Filter configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._regex = config.replace_regex

    def should_generate(self, item, source_name: Optional[str], verbose: bool = False) -> bool:
        """
        Check the item's THUMBNAIL bundles for a custom thumbnail of this source.

        Stops at the first custom thumbnail found.

        Args:
            item: Object with get_bundles(name) and a handle attribute
            source_name: Name of the source bitstream, may be None
            verbose: Log replaceable thumbnails at INFO instead of DEBUG

        Returns:
            True if a thumbnail should be generated
        """
        log = self.logger.info if verbose else self.logger.debug

        for bundle in item.get_bundles(THUMBNAIL_BUNDLE):
            for bitstream in bundle.bitstreams:
                if not self.is_related(bitstream, source_name):
                    continue

                description = bitstream.description
                if not description:
                    log(f"Thumbnail {bitstream.name} for {source_name} has no description and is replaceable.")
                    continue
                if self._regex.fullmatch(description):
                    log(f"{description} {source_name} matches pattern and is replaceable.")
                    continue
                if description == self.config.bitstream_description:
                    log(f"{description} {source_name} is replaceable.")
                    continue

                self.logger.info(
                    f"Custom thumbnail exists for {source_name} for item "
                    f"{getattr(item, 'handle', None)}. Thumbnail will not be generated."
                )
                return False

        return True

    @staticmethod
    def is_related(bitstream: Bitstream, source_name: Optional[str]) -> bool:
        """A thumbnail belongs to a source when its name starts with the source name."""
        if bitstream.name is None or source_name is None:
            return True
        return bitstream.name.startswith(source_name)
