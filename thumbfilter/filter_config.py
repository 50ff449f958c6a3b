"""
FilterConfig - Thumbnail filter settings, loaded once at startup.
"""

import configparser
import logging
import os
import re
import shutil
from dataclasses import dataclass, asdict
from typing import List, Optional, Pattern

from .errors import ConfigurationError


DEFAULT_DESCRIPTION = "Generated Thumbnail"
DEFAULT_PATTERN = DEFAULT_DESCRIPTION

CONFIG_SECTION = 'thumbnail'


def str2bool(value, raise_exc=False):
    """converts diverse string values into boolean True or False."""
    true_set = {'yes', 'true', 't', 'y', '1'}
    false_set = {'no', 'false', 'f', 'n', '0'}

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        value = value.strip().lower()
        if value in true_set:
            return True
        if value in false_set:
            return False

    if raise_exc:
        raise ValueError('Expected "%s"' % '", "'.join(sorted(true_set | false_set)))
    return None


@dataclass
class FilterConfig:
    """
    Thumbnail generation policy.

    Attributes:
        max_width: Bounding box width for thumbnails
        max_height: Bounding box height for thumbnails
        flatten: Flatten layers onto white when extracting a page
        bitstream_description: Description label given to generated thumbnails
        replace_pattern: Regex; thumbnails whose description fully matches it
            may be replaced. None means "same as bitstream_description".
        converter: Name or path of the ImageMagick convert executable
        search_path: os.pathsep separated directories to find the converter in
    """
    max_width: int = 180
    max_height: int = 120
    flatten: bool = True
    bitstream_description: str = DEFAULT_DESCRIPTION
    replace_pattern: Optional[str] = None
    converter: str = 'convert'
    search_path: Optional[str] = None

    ENV_VARS = {
        'max_width': 'THUMBNAIL_MAX_WIDTH',
        'max_height': 'THUMBNAIL_MAX_HEIGHT',
        'flatten': 'THUMBNAIL_FLATTEN',
        'bitstream_description': 'THUMBNAIL_DESCRIPTION',
        'replace_pattern': 'THUMBNAIL_REPLACE_REGEX',
        'converter': 'THUMBNAIL_CONVERTER',
        'search_path': 'THUMBNAIL_SEARCH_PATH',
    }

    def __post_init__(self):
        self._replace_regex = None

    @classmethod
    def from_env(cls, base: Optional['FilterConfig'] = None) -> 'FilterConfig':
        """
        Build a config from THUMBNAIL_* environment variables.

        Args:
            base: Config providing values for unset variables (default: defaults)
        """
        config = base or cls()

        width = os.getenv(cls.ENV_VARS['max_width'])
        height = os.getenv(cls.ENV_VARS['max_height'])
        flatten = os.getenv(cls.ENV_VARS['flatten'])

        return cls(
            max_width=int(width) if width else config.max_width,
            max_height=int(height) if height else config.max_height,
            flatten=str2bool(flatten, raise_exc=True) if flatten else config.flatten,
            bitstream_description=os.getenv(
                cls.ENV_VARS['bitstream_description'], config.bitstream_description),
            replace_pattern=os.getenv(
                cls.ENV_VARS['replace_pattern'], config.replace_pattern),
            converter=os.getenv(cls.ENV_VARS['converter'], config.converter),
            search_path=os.getenv(cls.ENV_VARS['search_path'], config.search_path),
        )

    @classmethod
    def from_file(cls, path: str) -> 'FilterConfig':
        """
        Build a config from an INI file with a [thumbnail] section.

        Raises:
            ConfigurationError: If the file is missing or a value is malformed
        """
        parser = configparser.ConfigParser(interpolation=None)
        if not parser.read(path):
            raise ConfigurationError(f"Config file not found: {path}")

        defaults = cls()
        try:
            return cls(
                max_width=parser.getint(CONFIG_SECTION, 'maxwidth', fallback=defaults.max_width),
                max_height=parser.getint(CONFIG_SECTION, 'maxheight', fallback=defaults.max_height),
                flatten=parser.getboolean(CONFIG_SECTION, 'flatten', fallback=defaults.flatten),
                bitstream_description=parser.get(
                    CONFIG_SECTION, 'bitstream_description',
                    fallback=defaults.bitstream_description),
                replace_pattern=parser.get(CONFIG_SECTION, 'replace_regex', fallback=None),
                converter=parser.get(CONFIG_SECTION, 'converter', fallback=defaults.converter),
                search_path=parser.get(CONFIG_SECTION, 'search_path', fallback=None),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in {path}: {e}") from e

    @property
    def pattern(self) -> str:
        """The configured replace pattern, defaulting to the description label."""
        if self.replace_pattern is None:
            return self.bitstream_description
        return self.replace_pattern

    @property
    def replace_regex(self) -> Pattern:
        """
        Compiled replace pattern.

        An invalid pattern is logged and replaced by the literal default
        pattern, never by one that accepts every description.
        """
        if self._replace_regex is None:
            try:
                self._replace_regex = re.compile(self.pattern)
            except re.error as e:
                logging.getLogger(__name__).error(
                    f"Invalid thumbnail replacement pattern {self.pattern!r}: {e}; "
                    f"using {DEFAULT_PATTERN!r}"
                )
                self._replace_regex = re.compile(re.escape(DEFAULT_PATTERN))
        return self._replace_regex

    @property
    def search_paths(self) -> List[str]:
        """Directories to look for the converter in, or [] for PATH."""
        if not self.search_path:
            return []
        return [p for p in self.search_path.split(os.pathsep) if p]

    def find_converter(self) -> Optional[str]:
        """Resolve the converter executable, or None if it cannot be found."""
        path = os.pathsep.join(self.search_paths) if self.search_paths else None
        return shutil.which(self.converter, path=path)

    def validate(self, check_converter: bool = True) -> List[str]:
        """
        Check the configuration.

        Args:
            check_converter: Also require the converter to be on the search path

        Returns:
            List of problems, empty if the configuration is usable
        """
        errors = []

        if self.max_width <= 0:
            errors.append(f"Thumbnail max width must be positive, got {self.max_width}")
        if self.max_height <= 0:
            errors.append(f"Thumbnail max height must be positive, got {self.max_height}")

        try:
            re.compile(self.pattern)
        except re.error as e:
            errors.append(f"Invalid thumbnail replacement pattern {self.pattern!r}: {e}")

        if check_converter and self.find_converter() is None:
            where = self.search_path or 'PATH'
            errors.append(f"Converter '{self.converter}' not found on {where}")

        return errors

    def require_valid(self) -> 'FilterConfig':
        """Raise ConfigurationError unless validate() finds nothing."""
        errors = self.validate()
        if errors:
            raise ConfigurationError("Thumbnail filter configuration invalid", errors)
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = asdict(self)
        data['pattern'] = self.pattern
        return data
