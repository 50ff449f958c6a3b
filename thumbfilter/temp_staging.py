"""
TempStaging - Temp files for feeding source streams to the external converter.
"""

import atexit
import logging
import os
import tempfile
from typing import BinaryIO, List, Optional

from .errors import StagingError


class TempStaging:
    """
    Writes input streams to temp files and hands out sibling output paths.

    Every path handed out is removed by cleanup(), which also runs at
    interpreter exit. Removal is best effort.
    """

    def __init__(
        self,
        tmp_dir: Optional[str] = None,
        prefix: str = 'imthumb_',
        chunk_size: int = 64 * 1024,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize staging area.

        Args:
            tmp_dir: Directory for temp files (default: system temp dir)
            prefix: Prefix for staged file names
            chunk_size: Bytes copied per read
            logger: Optional logger instance
        """
        self.tmp_dir = tmp_dir
        self.prefix = prefix
        self.chunk_size = chunk_size
        self.logger = logger or logging.getLogger(__name__)
        self._paths: List[str] = []
        atexit.register(self.cleanup)

    @property
    def paths(self) -> List[str]:
        """Paths currently registered for deletion."""
        return list(self._paths)

    def stage_input(self, stream: BinaryIO, suffix: str = '.tmp') -> str:
        """
        Copy a stream to a new temp file.

        The stream is read to the end; it is not closed.

        Args:
            stream: Binary file-like object
            suffix: Suffix for the temp file name (e.g. '.tif')

        Returns:
            Path of the staged file

        Raises:
            StagingError: If the temp file cannot be created or written
        """
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.tmp_dir, prefix=self.prefix, suffix=suffix)
        except OSError as e:
            raise StagingError(f"Could not create temp file: {e}") from e
        self._paths.append(tmp_path)

        try:
            with os.fdopen(fd, 'wb') as out:
                for chunk in iter(lambda: stream.read(self.chunk_size), b''):
                    out.write(chunk)
        except OSError as e:
            raise StagingError(f"Could not stage input to {os.path.basename(tmp_path)}: {e}") from e

        self.logger.debug(f"Staged input: {tmp_path} ({os.path.getsize(tmp_path)} bytes)")
        return tmp_path

    def allocate_sibling_output_path(self, input_path: str, suffix: str) -> str:
        """
        Name an output file next to input_path: <input basename><suffix>.

        The file is not created, only registered for deletion.

        Raises:
            StagingError: If the input's directory does not exist
        """
        directory, name = os.path.split(input_path)
        if directory and not os.path.isdir(directory):
            raise StagingError(f"Temp directory missing for {name}")

        output_path = os.path.join(directory, name + suffix)
        self._paths.append(output_path)
        return output_path

    def remove(self, path: str) -> None:
        """Delete one file now, logging instead of raising on failure."""
        if os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                self.logger.warning(f"Could not delete {path}: {e}")

    def cleanup(self) -> None:
        """Delete every registered file."""
        while self._paths:
            self.remove(self._paths.pop())
