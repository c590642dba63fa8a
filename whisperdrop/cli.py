"""
Configure the bucket's CORS policy for browser uploads.

Usage:
    whisperdrop-setup-cors            # inspect, then fix if needed
    whisperdrop-setup-cors --force    # overwrite without inspecting

Requires B2_ENDPOINT, B2_KEY_ID, B2_APP_KEY and B2_BUCKET in the
environment or a .env file.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from .bootstrap import configure_logging, run_cors_setup
from .config.settings import Settings
from .core.storage.cors import ReconcileOutcome

logger = logging.getLogger(__name__)


def operator_log_level(configured: str) -> str:
    """Progress is narrated at INFO, so the level is capped there."""
    level = logging.getLevelName(configured.upper())
    if isinstance(level, int) and level <= logging.INFO:
        return configured.upper()
    return "INFO"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Configure bucket CORS so browsers can upload with presigned URLs",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the CORS rules without checking the current ones first",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or Settings()
    configure_logging(operator_log_level(settings.log_level))

    missing = settings.validate_required_fields()
    if missing:
        logger.error(
            "Missing required environment variables: %s\n"
            "Copy .env.example to .env and fill in your B2 credentials.",
            ", ".join(missing),
        )
        return 1

    result = asyncio.run(run_cors_setup(settings, force=args.force))

    if result.outcome is ReconcileOutcome.APPLIED:
        logger.info("Setup complete! You can now upload files from the browser.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
