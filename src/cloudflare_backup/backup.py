"""
Backup orchestration.

This module prepares the output directory, lists the zones on the account
and exports them one after another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cloudflare_backup.client import APIError
from cloudflare_backup.exporter import export_zone
from cloudflare_backup.models import ErrorPolicy
from cloudflare_backup.zones import list_zones

if TYPE_CHECKING:
    from pathlib import Path

    from cloudflare_backup.client import CloudFlareClient
    from cloudflare_backup.config import Config


logger = logging.getLogger(__name__)


class OutputDirectoryError(Exception):
    """Raised when the output path exists but is not a directory."""


@dataclass
class BackupReport:
    """
    Outcome of a backup run.

    Attributes
    ----------
    exported : list[Path]
        Files written, in zone order.
    failed : dict[str, str]
        Zone name to error message, for zones skipped under
        ``ErrorPolicy.CONTINUE``.
    """

    exported: list[Path] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether every zone was exported."""
        return not self.failed


def prepare_output_dir(path: Path) -> None:
    """
    Make sure the output directory exists.

    Parameters
    ----------
    path : Path
        Output directory.

    Raises
    ------
    OutputDirectoryError
        If the path exists and is not a directory.
    """
    if path.exists():
        if not path.is_dir():
            msg = "The provided output path must be a directory, not a file."
            raise OutputDirectoryError(msg)
        return

    logger.info('Creating output directory "%s".', path)
    path.mkdir(parents=True)


def run_backup(config: Config, client: CloudFlareClient) -> BackupReport:
    """
    Back up every zone on the account.

    Parameters
    ----------
    config : Config
        Application configuration.
    client : CloudFlareClient
        API client.

    Returns
    -------
    BackupReport
        Exported files and, with ``ErrorPolicy.CONTINUE``, failed zones.

    Raises
    ------
    OutputDirectoryError
        If the output path is not a directory.
    TooManyResultsError
        If the account holds more zones than fit in one page.
    APIError
        If listing zones fails, or a zone fails under ``ErrorPolicy.ABORT``.
    OSError
        If a backup file cannot be written under ``ErrorPolicy.ABORT``.
    """
    output_dir = config.output.directory_as_path
    prepare_output_dir(output_dir)

    zones = list_zones(client)

    report = BackupReport()
    for zone in zones:
        logger.info("Processing %s...", zone.name)
        try:
            path = export_zone(
                client,
                zone,
                output_dir,
                page_rules=config.export.page_rules,
            )
        except (APIError, OSError) as e:
            if config.export.on_error == ErrorPolicy.ABORT:
                raise
            logger.error("[%s] Export failed, skipping: %s", zone.name, e)  # noqa: TRY400
            report.failed[zone.name] = str(e)
            continue
        report.exported.append(path)

    logger.info(
        "Done! %d zone(s) exported, %d failed.",
        len(report.exported),
        len(report.failed),
    )
    return report
