"""
Public address resolver — ask echo services for this host's address.

Endpoints are tried in order; the first answer that parses as an IP
address wins. Errors and HTML error pages count as "try the next one".
Nothing here is fatal: exhaustion returns None.
"""

from __future__ import annotations

import ipaddress
import logging

from provisioner.adapters.base import Downloader
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.engine.fallback import Provider, first_success

logger = logging.getLogger(__name__)


def parse_address(body: str) -> str | None:
    """Strip all whitespace from ``body``; return it if it is an IP address."""
    candidate = "".join(body.split())
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def _ask(downloader: Downloader, url: str, timeout: int) -> str | None:
    receipt = downloader.fetch_text(url, timeout=timeout)
    if receipt.failed:
        return None
    return parse_address(receipt.output)


def resolve_public_address(
    downloader: Downloader | None,
    settings: InstallerSettings,
) -> str | None:
    """The first valid address from ``settings.address_endpoints``, or None."""
    if downloader is None:
        logger.info("No transfer tool; cannot discover the public address")
        return None

    timeout = settings.timeouts.address
    attempt = first_success(
        (
            Provider(name=url, produce=lambda url=url: _ask(downloader, url, timeout))
            for url in settings.address_endpoints
        ),
        chain="address",
    )
    if attempt is None:
        return None

    logger.info("Public address: %s (from %s)", attempt.value, attempt.name)
    return attempt.value
