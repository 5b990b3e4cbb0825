"""
Command-line interface for OpenAPI Tag Splitter.
"""

import argparse
import sys
import logging
from typing import List, Optional

from . import __version__
from .core import DEFAULT_TAG, OpenAPITagSplitter, OpenAPITagSplitterError

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


class UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports argument errors with the usage on stdout."""

    def error(self, message: str):
        self.print_usage(sys.stdout)
        print(f"{self.prog}: error: {message}")
        sys.exit(EXIT_USAGE)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = UsageArgumentParser(
        prog='openapi-tag-splitter',
        description='Split an OpenAPI document into one self-contained JSON document per tag',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s openapi.yaml out/                       # One <tag>-APIs.json per tag
  %(prog)s https://example.com/openapi.json out/   # Fetch the document first
  %(prog)s openapi.yaml out/ -p                    # Create out/ if missing
  %(prog)s openapi.yaml out/ --default-tag Misc    # Rename the untagged bucket
        """
    )

    parser.add_argument(
        'input_file',
        help='Path or http(s) URL of the OpenAPI document (JSON or YAML)'
    )

    parser.add_argument(
        'output_dir',
        help='Directory the per-tag JSON files are written to'
    )

    parser.add_argument(
        '--default-tag',
        default=DEFAULT_TAG,
        help=f'Partition name for operations without tags (default: {DEFAULT_TAG})'
    )

    parser.add_argument(
        '-p', '--parents',
        action='store_true',
        help='Create the output directory if it does not exist'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        splitter = OpenAPITagSplitter(
            args.input_file,
            args.output_dir,
            default_tag=args.default_tag,
            create_output_dir=args.parents
        )
        result = splitter.split()

        if result.failed:
            total = len(result.failed) + len(result.created)
            logger.warning(f"{len(result.failed)} of {total} files could not be written")

    except OpenAPITagSplitterError as e:
        logger.error(f"Error: {e}")
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(EXIT_FAILURE)


if __name__ == '__main__':
    main()
