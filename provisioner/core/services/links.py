"""
Link encoder — the two ``ss://`` URI forms clients import.

SIP002 percent-encodes ``method:secret`` in the userinfo; the legacy
form base64-encodes it. Both carry the same host, port and fragment.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
from urllib.parse import quote, unquote

from provisioner.core.constants import LINK_TAG
from provisioner.core.models.link import ConnectionLink


class LinkError(ValueError):
    """Raised when a string is not a decodable ``ss://`` link."""


def format_host(host: str) -> str:
    """Bracket IPv6 literals for use in a URI authority."""
    try:
        if isinstance(ipaddress.ip_address(host), ipaddress.IPv6Address):
            return f"[{host}]"
    except ValueError:
        pass
    return host


def encode_links(
    method: str,
    secret: str,
    host: str,
    port: int,
    tag: str = LINK_TAG,
) -> ConnectionLink:
    userinfo = f"{method}:{secret}"
    authority = f"{format_host(host)}:{port}"
    legacy_userinfo = base64.b64encode(userinfo.encode("utf-8")).decode("ascii")
    return ConnectionLink(
        sip002=f"ss://{quote(userinfo, safe='')}@{authority}#{tag}",
        legacy=f"ss://{legacy_userinfo}@{authority}#{tag}",
    )


def split_authority(authority: str) -> tuple[str, int]:
    """Split ``host:port`` or ``[v6]:port``.

    Raises:
        LinkError: If the port is missing or not numeric.
    """
    if authority.startswith("["):
        host, sep, rest = authority[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise LinkError(f"Bad IPv6 authority: {authority!r}")
        raw_port = rest[1:]
    else:
        host, sep, raw_port = authority.rpartition(":")
        if not sep:
            raise LinkError(f"No port in {authority!r}")

    if not host or not (raw_port.isascii() and raw_port.isdigit()):
        raise LinkError(f"Bad host or port in {authority!r}")
    return host, int(raw_port)


def parse_link(uri: str) -> tuple[str, str, int, str]:
    """Decode either link form.

    Returns:
        ``(userinfo, host, port, tag)`` with ``userinfo`` as
        ``"method:secret"`` and IPv6 brackets removed from ``host``.

    Raises:
        LinkError: If ``uri`` is not an ``ss://`` link with userinfo,
            host and port.
    """
    if not uri.startswith("ss://"):
        raise LinkError(f"Not an ss:// link: {uri!r}")

    # Legacy userinfo is raw base64 and may contain "/", so no urlsplit.
    rest, _, fragment = uri[len("ss://"):].partition("#")
    raw_userinfo, sep, authority = rest.rpartition("@")
    if not sep or not raw_userinfo:
        raise LinkError(f"Link has no userinfo: {uri!r}")

    host, port = split_authority(authority.rstrip("/"))

    userinfo = unquote(raw_userinfo)
    if ":" not in userinfo:
        userinfo = _decode_legacy(raw_userinfo, uri)

    return userinfo, host, port, unquote(fragment)


def _decode_legacy(raw: str, uri: str) -> str:
    normalized = raw.replace("-", "+").replace("_", "/")
    padded = normalized + "=" * (-len(normalized) % 4)
    try:
        decoded = base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise LinkError(f"Cannot decode userinfo in {uri!r}: {e}") from e
    if ":" not in decoded:
        raise LinkError(f"Userinfo is not method:secret in {uri!r}")
    return decoded
