"""
CLI entry point for Cloudflare Backup.

This module provides the command-line interface for running a backup.
"""

from __future__ import annotations

import logging
import sys

from cloudflare_backup.backup import OutputDirectoryError, run_backup
from cloudflare_backup.client import CloudFlareClient, TooManyResultsError
from cloudflare_backup.config import ConfigValidationError, load_config, parse_args
from cloudflare_backup.logging_config import setup_logging

logger = logging.getLogger("cloudflare_backup")


def main(argv: list[str] | None = None) -> None:
    """
    Run a backup of every zone on the account.

    Parse command-line arguments, load configuration, and export the zones.
    Any other error propagates with its traceback.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.
    """
    args = parse_args(argv)
    try:
        config = load_config(args)
    except ConfigValidationError as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging)
    logger.info("cloudflare-backup")

    with CloudFlareClient(config.api) as client:
        try:
            report = run_backup(config, client)
        except (TooManyResultsError, OutputDirectoryError) as e:
            logger.critical("%s", e)
            sys.exit(1)

    if not report.ok:
        logger.error(
            "Some zones could not be backed up: %s",
            ", ".join(report.failed),
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
