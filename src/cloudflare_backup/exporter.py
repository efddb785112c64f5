"""
Zone exporter.

This module fetches the DNS records (and optionally the page rules) of a
zone and renders them into a flat text backup. The file layout is:

- a comment header holding the zone name and its timestamps,
- one tab-separated line per DNS record,
- optionally, a comment section holding one JSON-encoded page rule per line.

All lines end with CRLF.

Record fields are written verbatim. Content that itself holds the column
separator or a line break (possible in TXT records) therefore no longer
splits back into the five columns of its line.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cloudflare_backup.client import ensure_single_page
from cloudflare_backup.models import DNSRecord, PageRule

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path
    from typing import Final

    from cloudflare_backup.client import CloudFlareClient
    from cloudflare_backup.models import Zone


RECORDS_PER_PAGE: Final[int] = 100

SEPARATOR: Final[str] = "\t\t"
NEWLINE: Final[str] = "\r\n"

PROXIED: Final[str] = "PROXY"
NOT_PROXIED: Final[str] = "NO_PROXY"

NO_PAGE_RULES: Final[str] = "# No page rules"


logger = logging.getLogger(__name__)


def fetch_dns_records(client: CloudFlareClient, zone: Zone) -> list[DNSRecord]:
    """
    Fetch the DNS records of a zone.

    Parameters
    ----------
    client : CloudFlareClient
        API client.
    zone : Zone
        The zone.

    Returns
    -------
    list[DNSRecord]
        Records in API order.

    Raises
    ------
    TooManyResultsError
        If the zone holds more records than fit in one page.
    """
    path = f"zones/{zone.id}/dns_records"
    envelope = client.get(path, {"per_page": str(RECORDS_PER_PAGE)}, list[DNSRecord])
    ensure_single_page(
        envelope,
        f"zones with more than {RECORDS_PER_PAGE} DNS records ({zone.name})",
        path,
    )
    records: list[DNSRecord] = envelope.result or []
    logger.debug("[%s] Fetched %d DNS record(s).", zone.name, len(records))
    return records


def fetch_page_rules(client: CloudFlareClient, zone: Zone) -> list[PageRule]:
    """
    Fetch the page rules of a zone, ordered by ascending priority.

    Parameters
    ----------
    client : CloudFlareClient
        API client.
    zone : Zone
        The zone.

    Returns
    -------
    list[PageRule]
        Rules in the order received.
    """
    path = f"zones/{zone.id}/pagerules"
    envelope = client.get(
        path,
        {"order": "priority", "direction": "asc"},
        list[PageRule],
    )
    rules: list[PageRule] = envelope.result or []
    logger.debug("[%s] Fetched %d page rule(s).", zone.name, len(rules))
    return rules


def format_record(record: DNSRecord) -> str:
    """Render a DNS record as a backup line (without line ending), fields verbatim."""
    proxied = PROXIED if record.proxied else NOT_PROXIED
    return SEPARATOR.join(
        (record.name, str(record.ttl), record.type, proxied, record.content),
    )


def format_page_rule(rule: PageRule) -> str:
    """Render a page rule as a commented JSON line (without line ending)."""
    return f"# {rule.model_dump_json()}"


def render_zone(
    zone: Zone,
    records: Sequence[DNSRecord],
    page_rules: Sequence[PageRule] | None = None,
) -> str:
    """
    Render the backup text of a zone.

    Parameters
    ----------
    zone : Zone
        The zone.
    records : Sequence[DNSRecord]
        DNS records, written in the given order.
    page_rules : Sequence[PageRule] | None, optional
        Page rules. None leaves the page rule section out entirely.

    Returns
    -------
    str
        The backup text, CRLF terminated.
    """
    lines = [
        "#",
        f"# DNS zone backup for {zone.name}",
        f"# Domain created on: {zone.created_on}",
        f"# Domain activated on: {zone.activated_on or ''}",
        f"# Domain last modified on: {zone.modified_on}",
        "#",
        "# " + SEPARATOR.join(("Name", "TTL", "Type", "Proxied", "Value")),
    ]
    lines.extend(format_record(record) for record in records)

    if page_rules is not None:
        lines.extend(("#", "# Page rules (ordered by priority)", "#"))
        if page_rules:
            lines.extend(format_page_rule(rule) for rule in page_rules)
        else:
            lines.append(NO_PAGE_RULES)

    return "".join(line + NEWLINE for line in lines)


def write_zone_file(output_dir: Path, zone: Zone, content: str) -> Path:
    """
    Create (or truncate) the backup file of a zone and write its content.

    Parameters
    ----------
    output_dir : Path
        Output directory; must exist.
    zone : Zone
        The zone, whose name becomes the file name.
    content : str
        Rendered backup text.

    Returns
    -------
    Path
        Path of the written file.
    """
    path = output_dir / f"{zone.name}.txt"
    # newline="" keeps the CRLF line endings byte-exact on every platform
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(content)
    return path


def export_zone(
    client: CloudFlareClient,
    zone: Zone,
    output_dir: Path,
    *,
    page_rules: bool = False,
) -> Path:
    """
    Back up a single zone.

    Everything is fetched before the file is opened, so a failed fetch
    never leaves a truncated backup behind.

    Parameters
    ----------
    client : CloudFlareClient
        API client.
    zone : Zone
        The zone to back up.
    output_dir : Path
        Output directory.
    page_rules : bool, optional
        Whether to fetch and write the zone's page rules.

    Returns
    -------
    Path
        Path of the written file.

    Raises
    ------
    APIError
        If a fetch fails.
    OSError
        If the file cannot be written.
    """
    records = fetch_dns_records(client, zone)
    rules = fetch_page_rules(client, zone) if page_rules else None

    path = write_zone_file(output_dir, zone, render_zone(zone, records, rules))
    logger.info(
        '[%s] Wrote %d record(s) to "%s".',
        zone.name,
        len(records),
        path,
    )
    return path
