"""Command-line interface for hashnode-distiller."""

import argparse
import json
import logging
import sys
from pathlib import Path

from hashnode_distiller.exceptions import ExportError
from hashnode_distiller.pipeline.orchestrator import Converter
from schemas.options import (
    DEFAULT_IMAGE_FOLDER,
    DEFAULT_IMAGE_PREFIX,
    ConversionOptions,
    ConverterConfig,
    LoggerConfig,
    OutputStructure,
)
from schemas.results import ConversionResult

PROGRESS_BAR_WIDTH = 20


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging for the CLI."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def progress_bar(percentage: int) -> str:
    """Render a fixed-width progress bar.

    Examples:
        >>> progress_bar(50)
        '[==========          ]'
    """
    filled = round(PROGRESS_BAR_WIDTH * percentage / 100)
    return f"[{'=' * filled}{' ' * (PROGRESS_BAR_WIDTH - filled)}]"


def validate_paths(args: argparse.Namespace) -> str | None:
    """Check the command's paths before converting.

    Returns:
        An error message, or None if the paths are usable
    """
    export_path = args.export.resolve()
    if not export_path.exists():
        return f"Export file not found: {export_path}"
    if not export_path.is_file():
        return f"Export path is not a file: {export_path}"

    try:
        json.loads(export_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return f"Export file contains invalid JSON: {export_path}"
    except (OSError, UnicodeDecodeError):
        return f"Cannot read export file: {export_path}"

    output_parent = args.output.resolve().parent
    if not output_parent.exists():
        return f"Parent directory does not exist: {output_parent}"

    if args.log_file is not None:
        log_parent = args.log_file.resolve().parent
        if not log_parent.exists():
            return f"Log file parent directory does not exist: {log_parent}"

    return None


def log_result(result: ConversionResult, verbose: bool = False) -> None:
    """Log the outcome of a conversion run."""
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("CONVERSION COMPLETE")
    logger.info("=" * 60)
    logger.info(f"  Converted: {result.converted} posts")
    logger.info(f"  Skipped:   {result.skipped} posts")
    logger.info(f"  Errors:    {len(result.errors)}")
    logger.info(f"  Duration:  {result.duration}")
    logger.info("=" * 60)

    if result.errors:
        logger.warning(f"{len(result.errors)} posts failed to convert")
        if verbose:
            for i, error in enumerate(result.errors, start=1):
                logger.warning(f"  {i}. [{error.slug}] {error.error}")


def convert(args: argparse.Namespace) -> int:
    """Execute the convert command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose, args.quiet)
    logger = logging.getLogger(__name__)

    if args.verbose and args.quiet:
        logger.error("Cannot use both --verbose and --quiet")
        return 1

    error = validate_paths(args)
    if error is not None:
        logger.error(error)
        return 1

    export_path = args.export.resolve()
    output_dir = args.output.resolve()

    logger.info(f"Export: {export_path}")
    logger.info(f"Output: {output_dir}")
    if args.log_file is not None:
        logger.info(f"Log:    {args.log_file.resolve()}")
    logger.info(f"Skip existing: {not args.no_skip_existing}")

    options = ConversionOptions(skip_existing=not args.no_skip_existing)
    if args.log_file is not None:
        verbosity = "verbose" if args.verbose else "quiet" if args.quiet else "normal"
        options.logger_config = LoggerConfig(
            file_path=args.log_file.resolve(), verbosity=verbosity
        )

    config = ConverterConfig(
        output_structure=OutputStructure(
            mode="flat" if args.flat else "nested",
            image_folder_name=args.image_folder,
            image_path_prefix=args.image_prefix,
        )
    )

    def report_progress(current: int, total: int, title: str) -> None:
        percentage = round(current / total * 100)
        logger.info(f"[{current}/{total}] {progress_bar(percentage)} {title}")

    try:
        with Converter.with_progress(report_progress, config=config) as converter:
            result = converter.convert_all_posts(export_path, output_dir, options)
    except ExportError as e:
        logger.error(f"Conversion failed: {e}")
        return 1

    log_result(result, verbose=args.verbose)

    return 1 if result.errors else 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="hashnode-distiller",
        description="Convert a Hashnode blog export into markdown files",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only report warnings and errors",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert a Hashnode export to markdown",
        description="Convert every post in a Hashnode export JSON file to a markdown "
        "document with YAML frontmatter, downloading CDN images alongside.",
    )
    convert_parser.add_argument(
        "-e", "--export",
        type=Path,
        required=True,
        help="Path to the Hashnode export JSON file",
    )
    convert_parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Output directory for converted posts",
    )
    convert_parser.add_argument(
        "-l", "--log-file",
        type=Path,
        default=None,
        help="Append a detailed conversion log to this file",
    )
    convert_parser.add_argument(
        "--no-skip-existing",
        action="store_true",
        help="Reconvert posts whose output already exists",
    )
    convert_parser.add_argument(
        "--flat",
        action="store_true",
        help="Write {slug}.md files with images in a shared folder beside the output directory",
    )
    convert_parser.add_argument(
        "--image-folder",
        type=str,
        default=DEFAULT_IMAGE_FOLDER,
        help=f"Shared image folder name in flat mode (default: {DEFAULT_IMAGE_FOLDER})",
    )
    convert_parser.add_argument(
        "--image-prefix",
        type=str,
        default=DEFAULT_IMAGE_PREFIX,
        help=f"Image path prefix in flat mode (default: {DEFAULT_IMAGE_PREFIX})",
    )
    convert_parser.set_defaults(func=convert)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
