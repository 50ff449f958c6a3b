"""
ImageMagickThumbnailFilter - Thumbnail media filter backed by ImageMagick.
"""

import logging
import os
from typing import BinaryIO, Optional

from PIL import Image

from .converter import ImageMagickConverter
from .filter_config import FilterConfig
from .item_record import THUMBNAIL_BUNDLE
from .temp_staging import TempStaging
from .thumbnail_guard import ThumbnailGuard


class ImageMagickThumbnailFilter:
    """
    Filter image and document bitstreams into JPEG thumbnails that fit
    within max_width x max_height.

    Files produced by produce() belong to the filter until cleanup() is
    called (or the filter is used as a context manager).
    """

    FORMAT = "JPEG"

    # Pillow opens these but cannot see their pages
    NON_RASTER_FORMATS = {'EPS', 'WMF'}

    def __init__(
        self,
        config: FilterConfig,
        staging: Optional[TempStaging] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize filter.

        Args:
            config: Filter configuration, built once at startup
            staging: Optional staging area (default: system temp dir)
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.staging = staging or TempStaging(logger=self.logger)
        self.guard = ThumbnailGuard(config, logger=self.logger)
        self.converter = ImageMagickConverter(config, self.staging, logger=self.logger)

    def __enter__(self) -> 'ImageMagickThumbnailFilter':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

    def target_bundle_name(self) -> str:
        return THUMBNAIL_BUNDLE

    def target_format(self) -> str:
        return self.FORMAT

    def output_name(self, source_name: str) -> str:
        """Name of the thumbnail for a source: the source name plus '.jpg'."""
        return source_name + ".jpg"

    def generated_description(self) -> str:
        return self.config.bitstream_description

    def pre_check(self, item, source_name: Optional[str], verbose: bool = False) -> bool:
        """Return True unless the item already has a custom thumbnail for this source."""
        return self.guard.should_generate(item, source_name, verbose=verbose)

    def produce(
        self,
        source_stream: BinaryIO,
        page_index: Optional[int] = None,
        source_name: Optional[str] = None,
        verbose: bool = False
    ) -> str:
        """
        Stage a source stream and convert it to a JPEG thumbnail.

        When page_index is given and the source is not a single-frame
        raster, that page is extracted first and then resized.

        Args:
            source_stream: Binary stream of the original bitstream
            page_index: Zero-based page to render for multi-page sources
            source_name: Original file name, used for the temp suffix
            verbose: Log converter commands at INFO

        Returns:
            Path of the thumbnail file

        Raises:
            StagingError: If the stream cannot be staged
            ConversionError: If a convert step fails
        """
        suffix = os.path.splitext(source_name)[1] if source_name else ''
        input_path = self.staging.stage_input(source_stream, suffix=suffix or '.tmp')

        if page_index is not None and not self.is_flat_raster(input_path):
            self.logger.debug(f"Extracting page {page_index} from {source_name}")
            input_path = self.converter.extract_frame(input_path, page_index, verbose=verbose)

        return self.converter.resize(input_path, verbose=verbose)

    def is_flat_raster(self, path: str) -> bool:
        """
        True if Pillow reads the file as a single-frame raster image.

        Vector documents (PostScript, metafiles), files Pillow cannot
        identify and images too large for Pillow to open are not flat;
        those go through extract_frame when a page is requested.
        """
        try:
            with Image.open(path) as img:
                if img.format in self.NON_RASTER_FORMATS:
                    return False
                return getattr(img, 'n_frames', 1) == 1
        except Image.DecompressionBombError as e:
            self.logger.debug(f"Not inspecting {os.path.basename(path)}: {e}")
            return False
        except OSError:
            return False

    def cleanup(self) -> None:
        """Delete every temp file this filter has created."""
        self.staging.cleanup()
