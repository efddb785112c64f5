"""Zone enumeration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cloudflare_backup.client import ensure_single_page
from cloudflare_backup.models import Zone

if TYPE_CHECKING:
    from typing import Final

    from cloudflare_backup.client import CloudFlareClient


ZONES_PER_PAGE: Final[int] = 50


logger = logging.getLogger(__name__)


def list_zones(client: CloudFlareClient) -> list[Zone]:
    """
    List every zone on the account, in the order the API returns them.

    Only a single page is requested.

    Parameters
    ----------
    client : CloudFlareClient
        API client.

    Returns
    -------
    list[Zone]
        The zones.

    Raises
    ------
    TooManyResultsError
        If the account holds more zones than fit in one page.
    APIError
        If the request fails.
    """
    path = "zones"
    envelope = client.get(path, {"per_page": str(ZONES_PER_PAGE)}, list[Zone])
    ensure_single_page(envelope, f"accounts with more than {ZONES_PER_PAGE} zones", path)

    zones: list[Zone] = envelope.result or []
    logger.info("Found %d zone(s).", len(zones))
    return zones
