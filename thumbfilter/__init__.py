"""
ImageMagick Thumbnail Filter

Decides whether a repository item needs a generated thumbnail for one of
its source files, and produces a bounded-size JPEG with ImageMagick:
    1. Pre-check: never overwrite a custom (non-generated) thumbnail
    2. Produce: stage the source, extract a page if needed, shrink to fit
"""

__version__ = "1.0.0"

from .errors import ThumbnailFilterError, ConfigurationError, StagingError, ConversionError
from .filter_config import FilterConfig
from .item_record import Item, Bundle, Bitstream, THUMBNAIL_BUNDLE
from .thumbnail_guard import ThumbnailGuard
from .temp_staging import TempStaging
from .converter import ConversionJob, ImageMagickConverter
from .thumbnail_filter import ImageMagickThumbnailFilter

__all__ = [
    "ThumbnailFilterError",
    "ConfigurationError",
    "StagingError",
    "ConversionError",
    "FilterConfig",
    "Item",
    "Bundle",
    "Bitstream",
    "THUMBNAIL_BUNDLE",
    "ThumbnailGuard",
    "TempStaging",
    "ConversionJob",
    "ImageMagickConverter",
    "ImageMagickThumbnailFilter",
]
