"""
Entry point for the archive_uploader component.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .application.exceptions import UploaderError
from .infrastructure.containers import Container
from .settings import settings_dict

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cli_overrides(args: argparse.Namespace) -> dict:
    """Maps the flags that were given on the command line onto settings keys."""
    overrides = {
        "bucket_name": args.bucket_name,
        "resume_at": args.resume_at,
        "parallel": args.parallel,
        "remove_files": args.remove_files,
    }
    return {
        "uploader": {
            key: value for key, value in overrides.items() if value is not None
        }
    }


async def run_application(
    args: argparse.Namespace, container: Optional[Container] = None
) -> int:
    """Wires and runs the application using the DI container."""

    if container is None:
        container = Container()
        container.config.from_dict(settings_dict())
    container.config.from_dict(cli_overrides(args))
    setup_logging(level=container.config.logging.level() or "INFO")

    try:
        uploader_service = container.uploader_service()
        summary = await uploader_service.run()
    except UploaderError as e:
        logger.error(f"An application error occurred: {e}")
        return 1
    finally:
        await container.http_client().aclose()

    if args.strict and not summary.ok:
        logger.error(f"{len(summary.failed)} archives did not upload cleanly.")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download zip archives and upload their contents to a bucket"
    )

    parser.add_argument(
        "--bucket-name",
        help="The name of the GCP bucket to upload to.",
    )

    parser.add_argument(
        "--resume-at",
        type=int,
        help="Catalog number at which to resume (earlier archives are skipped).",
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Download and upload all archives at once; needs more disk space.",
    )

    parser.add_argument(
        "--remove-files",
        action="store_true",
        default=None,
        help="Remove each archive after upload (only without --parallel).",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any archive or entry failed.",
    )

    return parser


def main(argv: Optional[List[str]] = None):
    cli_args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run_application(cli_args)))


if __name__ == "__main__":
    main()
