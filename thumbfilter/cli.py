"""
Command Line Interface for the ImageMagick thumbnail filter.
"""

import argparse
import logging
import os
import shutil
from typing import List, Optional

from .errors import ConfigurationError, ConversionError, StagingError
from .filter_config import FilterConfig
from .item_record import Item, THUMBNAIL_BUNDLE
from .thumbnail_filter import ImageMagickThumbnailFilter


EXIT_SKIPPED = 3


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('sh').setLevel(logging.WARNING)

    return logging.getLogger('thumbfilter')


def get_filter_config(args: argparse.Namespace) -> FilterConfig:
    """Get filter configuration from config file, environment and CLI overrides."""
    config_file = getattr(args, 'config', None)
    base = FilterConfig.from_file(config_file) if config_file else None
    config = FilterConfig.from_env(base)

    if getattr(args, 'max_width', None):
        config.max_width = args.max_width
    if getattr(args, 'max_height', None):
        config.max_height = args.max_height
    if getattr(args, 'no_flatten', False):
        config.flatten = False
    if getattr(args, 'description', None):
        config.bitstream_description = args.description
    if getattr(args, 'replace_regex', None):
        config.replace_pattern = args.replace_regex
    if getattr(args, 'converter', None):
        config.converter = args.converter
    if getattr(args, 'search_path', None):
        config.search_path = args.search_path

    return config


def load_config(
    args: argparse.Namespace,
    logger: logging.Logger,
    check_converter: bool = True
) -> Optional[FilterConfig]:
    """Load and validate configuration, logging every problem found."""
    try:
        config = get_filter_config(args)
    except (ConfigurationError, ValueError) as e:
        logger.error(str(e))
        return None

    errors = config.validate(check_converter=check_converter)
    if errors:
        for error in errors:
            logger.error(error)
        return None
    return config


def load_item(path: Optional[str], logger: logging.Logger) -> Optional[Item]:
    """Load an item snapshot, or an empty item if no path was given."""
    if not path:
        return Item()
    try:
        return Item.load(path)
    except FileNotFoundError:
        logger.error(f"Item file not found: {path}")
    except (ValueError, KeyError) as e:
        logger.error(f"Failed to load item {path}: {e}")
    return None


def page_number(value: str) -> int:
    """argparse type for zero-based page indexes."""
    page = int(value)
    if page < 0:
        raise argparse.ArgumentTypeError(f"page must be zero or more, got {value}")
    return page


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add thumbnail configuration overrides to a parser."""
    group = parser.add_argument_group('Thumbnail Settings')
    group.add_argument('--config', metavar='FILE', help='INI file with a [thumbnail] section')
    group.add_argument('--max-width', type=int, help='Override THUMBNAIL_MAX_WIDTH (default: 180)')
    group.add_argument('--max-height', type=int, help='Override THUMBNAIL_MAX_HEIGHT (default: 120)')
    group.add_argument('--no-flatten', action='store_true',
                       help='Do not flatten extracted pages onto white')
    group.add_argument('--description', help='Override THUMBNAIL_DESCRIPTION')
    group.add_argument('--replace-regex', help='Override THUMBNAIL_REPLACE_REGEX')
    group.add_argument('--converter', help='Override THUMBNAIL_CONVERTER (default: convert)')
    group.add_argument('--search-path', help='Override THUMBNAIL_SEARCH_PATH')


def cmd_check(args: argparse.Namespace) -> int:
    """Execute check command."""
    logger = setup_logging(args.verbose)

    config = load_config(args, logger, check_converter=False)
    if config is None:
        return 1
    item = load_item(args.item, logger)
    if item is None:
        return 1

    with ImageMagickThumbnailFilter(config, logger=logger) as thumb_filter:
        proceed = thumb_filter.pre_check(item, args.source, verbose=args.verbose)

    print("generate" if proceed else "skip")
    return 0 if proceed else EXIT_SKIPPED


def cmd_generate(args: argparse.Namespace) -> int:
    """Execute generate command."""
    logger = setup_logging(args.verbose)

    config = load_config(args, logger)
    if config is None:
        return 1
    item = load_item(args.item, logger)
    if item is None:
        return 1

    source_name = args.source or os.path.basename(args.input)
    mode_str = " [DRY RUN]" if args.dry_run else ""
    logger.info(f"Source: {source_name} (item {item.handle}){mode_str}")
    logger.info(f"Bounding box: {config.max_width}x{config.max_height}")

    with ImageMagickThumbnailFilter(config, logger=logger) as thumb_filter:
        if not args.force and not thumb_filter.pre_check(item, source_name, verbose=args.verbose):
            print(f"Skipped: custom thumbnail exists for {source_name}")
            return EXIT_SKIPPED

        output_name = thumb_filter.output_name(source_name)
        destination = os.path.join(args.output_dir, output_name)

        if args.dry_run:
            print(f"Would generate: {destination}")
            return 0

        try:
            with open(args.input, 'rb') as source_stream:
                thumb_path = thumb_filter.produce(
                    source_stream,
                    page_index=args.page,
                    source_name=source_name,
                    verbose=args.verbose
                )
            os.makedirs(args.output_dir, exist_ok=True)
            # shutil handles a temp dir on another filesystem
            shutil.move(thumb_path, destination)
        except FileNotFoundError:
            logger.error(f"Input not found: {args.input}")
            return 1
        except StagingError as e:
            logger.error(f"Staging failed for {source_name} (item {item.handle}): {e}")
            return 1
        except ConversionError as e:
            logger.error(f"Conversion failed [{e.kind}] for {source_name} (item {item.handle}): {e}")
            if e.stderr:
                logger.debug(e.stderr)
            return 1
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return 130

        print(f"Bundle: {thumb_filter.target_bundle_name()}")
        print(f"Format: {thumb_filter.target_format()}")
        print(f"Name: {output_name}")
        print(f"Description: {thumb_filter.generated_description()}")
        print(f"Written: {destination}")

    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Execute info command."""
    logger = setup_logging(args.verbose)

    try:
        config = get_filter_config(args)
    except (ConfigurationError, ValueError) as e:
        logger.error(str(e))
        return 1

    print("Thumbnail filter settings:")
    for key, value in config.to_dict().items():
        print(f"  {key}: {value}")
    print(f"  converter resolved to: {config.find_converter() or 'NOT FOUND'}")
    print(f"Bundle: {THUMBNAIL_BUNDLE}, format: {ImageMagickThumbnailFilter.FORMAT}, "
          f"description: {config.bitstream_description}")

    return 0 if not config.validate() else 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='thumbfilter',
        description='ImageMagick thumbnail filter for repository items',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m thumbfilter check --item item.json --source figure1.tif
  python -m thumbfilter generate --item item.json --input figure1.tif --output-dir out/
  python -m thumbfilter generate --input report.pdf --page 0 --output-dir out/

Exit codes:
  0 generated (or would generate), 1 error, 3 skipped (custom thumbnail), 130 interrupted
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Check command
    check_parser = subparsers.add_parser('check', help='Decide whether a thumbnail should be generated')
    check_parser.add_argument('-i', '--item', help='Item JSON file')
    check_parser.add_argument('-s', '--source', required=True, help='Source bitstream name')
    check_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(check_parser)

    # Generate command
    gen_parser = subparsers.add_parser('generate', help='Generate a thumbnail for one source file')
    gen_parser.add_argument('-i', '--item', help='Item JSON file (default: item with no bundles)')
    gen_parser.add_argument('--input', required=True, help='Source file to read')
    gen_parser.add_argument('-s', '--source', help='Source bitstream name (default: input file name)')
    gen_parser.add_argument('-p', '--page', type=page_number, help='Page to render for multi-page sources')
    gen_parser.add_argument('-o', '--output-dir', default='.', help='Directory for the thumbnail')
    gen_parser.add_argument('-n', '--dry-run', action='store_true', help='Show what would be done')
    gen_parser.add_argument('-f', '--force', action='store_true', help='Generate even over a custom thumbnail')
    gen_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(gen_parser)

    # Info command
    info_parser = subparsers.add_parser('info', help='Show effective settings')
    info_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(info_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'check':
        return cmd_check(parsed_args)
    elif parsed_args.command == 'generate':
        return cmd_generate(parsed_args)
    elif parsed_args.command == 'info':
        return cmd_info(parsed_args)

    return 1
