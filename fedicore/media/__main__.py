"""CLI entry point for fedicore.media.

Usage:
    python -m fedicore.media                          # Advance all pending attachments
    python -m fedicore.media --account-id abc123      # Only this account's attachments
    python -m fedicore.media --limit 100              # At most 100 attachments
    python -m fedicore.media --ingest photo.jpg --content-type image/jpeg --account-id abc123
    python -m fedicore.media --debug                  # Show debug info
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from fedicore.media.logger import logger
from fedicore.media.run import ingest_media, run_media
from fedicore.media.types import MediaKind
from fedicore.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="fedicore media attachment pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fedicore.media
      Advance every RECEIVED attachment

  python -m fedicore.media --concurrency 8 --limit 500
      Advance up to 500 attachments, 8 at a time

  python -m fedicore.media --ingest clip.mp4 --content-type video/mp4 --account-id abc123
      Accept a local file as an upload and process it

  python -m fedicore.media --config /path/to/config.json
      Use a custom config file
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config.json",
        help="Path to config.json (default: config.json)",
    )
    parser.add_argument(
        "--account-id",
        type=str,
        help="Only process attachments owned by this account",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Process at most this many attachments",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Attachments processed in parallel (default: 4)",
    )
    parser.add_argument(
        "--ingest",
        type=str,
        metavar="FILE",
        help="Ingest this file as a new attachment (needs --account-id, --content-type)",
    )
    parser.add_argument(
        "--content-type",
        type=str,
        help="MIME type of the --ingest file",
    )
    parser.add_argument(
        "--kind",
        type=str,
        choices=[k.value for k in MediaKind if k is not MediaKind.UNKNOWN],
        help="Media kind of the --ingest file (default: from content type)",
    )
    parser.add_argument(
        "--description",
        type=str,
        help="Alt text for the --ingest file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with third-party library logs",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Optional file to write logs to",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ingest and not (args.account_id and args.content_type):
        parser.error("--ingest requires --account-id and --content-type")
    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    setup_logging(
        verbosity=2 if args.debug else int(args.verbose),
        log_file=args.log_file,
    )

    try:
        if args.ingest:
            asyncio.run(
                ingest_media(
                    args.ingest,
                    account_id=args.account_id,
                    content_type=args.content_type,
                    config_path=args.config,
                    kind=MediaKind(args.kind) if args.kind else None,
                    description=args.description,
                )
            )
        else:
            logger.info("Starting media sweep")
            asyncio.run(
                run_media(
                    config_path=args.config,
                    account_id=args.account_id,
                    limit=args.limit,
                    concurrency=args.concurrency,
                )
            )
        logger.success("Media pipeline complete!")
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise


if __name__ == "__main__":
    main()
