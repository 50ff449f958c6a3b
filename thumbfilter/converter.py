"""
ImageMagickConverter - Runs ImageMagick convert to build JPEG thumbnails.
"""

import glob
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import sh

from .errors import ConfigurationError, ConversionError
from .filter_config import FilterConfig
from .temp_staging import TempStaging


RESIZE = 'resize'
EXTRACT_FRAME = 'extract_frame'

OUTPUT_SUFFIX = '.jpg'


@dataclass(frozen=True)
class ConversionJob:
    """
    One convert invocation.

    Attributes:
        input_path: File to read
        output_path: JPEG file to write
        operation: RESIZE or EXTRACT_FRAME
        page: Zero-based page/frame index (EXTRACT_FRAME only)
        flatten: Flatten onto a white background (EXTRACT_FRAME only)
    """
    input_path: str
    output_path: str
    operation: str = RESIZE
    page: int = 0
    flatten: bool = False

    def arguments(self, max_width: int, max_height: int) -> List[str]:
        """Build the convert argument list."""
        if self.operation == RESIZE:
            # '>' only ever shrinks; aspect ratio is kept
            return [self.input_path, '-thumbnail', f"{max_width}x{max_height}>", self.output_path]

        args = [f"{self.input_path}[{self.page}]"]
        if self.flatten:
            args.extend(['-background', 'white', '-flatten'])
        args.append(self.output_path)
        return args


class ImageMagickConverter:
    """
    Builds and runs convert commands for the two thumbnail steps.

    Both steps write a JPEG next to their input and return its path.
    Failed runs leave no output behind.
    """

    def __init__(
        self,
        config: FilterConfig,
        staging: TempStaging,
        check: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize converter.

        Args:
            config: Filter configuration (bounding box, flatten, executable)
            staging: Staging area that owns the output files
            check: Resolve the executable now and raise ConfigurationError if missing
            logger: Optional logger instance
        """
        self.config = config
        self.staging = staging
        self.logger = logger or logging.getLogger(__name__)

        if check:
            try:
                self._command()
            except sh.CommandNotFound as e:
                raise ConfigurationError(
                    f"Converter '{config.converter}' not found on {config.search_path or 'PATH'}"
                ) from e

    def _command(self):
        return sh.Command(self.config.converter, search_paths=self.config.search_paths or None)

    def resize(self, input_path: str, verbose: bool = False) -> str:
        """
        Shrink an image to fit the configured bounding box.

        Returns:
            Path of the JPEG thumbnail
        """
        job = ConversionJob(
            input_path=input_path,
            output_path=self.staging.allocate_sibling_output_path(input_path, OUTPUT_SUFFIX),
            operation=RESIZE,
        )
        return self.run(job, verbose)

    def extract_frame(self, input_path: str, page: int, verbose: bool = False) -> str:
        """
        Pull one page/frame out of a multi-page source as a JPEG.

        Args:
            input_path: Multi-page or layered source file
            page: Zero-based page index
            verbose: Log the command at INFO

        Returns:
            Path of the single-frame JPEG
        """
        if page < 0:
            raise ValueError(f"Page index must be zero or more, got {page}")

        job = ConversionJob(
            input_path=input_path,
            output_path=self.staging.allocate_sibling_output_path(input_path, OUTPUT_SUFFIX),
            operation=EXTRACT_FRAME,
            page=page,
            flatten=self.config.flatten,
        )
        return self.run(job, verbose)

    def run(self, job: ConversionJob, verbose: bool = False) -> str:
        """
        Execute a job and return its output path.

        Raises:
            ConversionError: If convert cannot start, fails, is killed or
                produces nothing
        """
        source = os.path.basename(job.input_path)
        args = job.arguments(self.config.max_width, self.config.max_height)

        log = self.logger.info if verbose else self.logger.debug
        log(f"IM {job.operation} command: {self.config.converter} {' '.join(args)}")

        try:
            convert = self._command()
            convert(*args)
        except sh.CommandNotFound as e:
            self._discard(job)
            raise ConversionError(
                f"Converter '{self.config.converter}' not found while converting {source}",
                ConversionError.LAUNCH, source=source
            ) from e
        except sh.SignalException as e:
            self._discard(job)
            raise ConversionError(
                f"Converter was interrupted while converting {source}",
                ConversionError.INTERRUPTED, source=source, stderr=_decode(e.stderr)
            ) from e
        except sh.ErrorReturnCode as e:
            self._discard(job)
            exit_code = getattr(e, 'exit_code', None)
            raise ConversionError(
                f"Converter exited with status {exit_code} while converting {source}",
                ConversionError.EXIT, exit_code=exit_code, source=source,
                stderr=_decode(e.stderr)
            ) from e
        except OSError as e:
            self._discard(job)
            raise ConversionError(
                f"Converter could not be started for {source}: {e}",
                ConversionError.LAUNCH, source=source
            ) from e
        except KeyboardInterrupt:
            self._discard(job)
            raise

        if not os.path.exists(job.output_path) or os.path.getsize(job.output_path) == 0:
            frames = len(_frame_outputs(job.output_path))
            self._discard(job)
            detail = f" (wrote {frames} separate frames instead)" if frames else ""
            raise ConversionError(
                f"Converter produced no output for {source}{detail}",
                ConversionError.NO_OUTPUT, exit_code=0, source=source
            )

        return job.output_path

    def _discard(self, job: ConversionJob) -> None:
        self.staging.remove(job.output_path)
        for path in _frame_outputs(job.output_path):
            self.staging.remove(path)


def _frame_outputs(output_path: str) -> List[str]:
    """Files convert writes instead of output_path for a multi-frame input: out-0.jpg, out-1.jpg, ..."""
    root, ext = os.path.splitext(output_path)
    return sorted(glob.glob(f"{glob.escape(root)}-[0-9]*{glob.escape(ext)}"))


def _decode(data) -> str:
    if isinstance(data, bytes):
        return data.decode('utf-8', 'replace')
    return data or ''
