"""
Fixed design constants.

Pure data. These values are part of the wire contract with sing-box
and with client applications, so they are not exposed as settings.
"""

from __future__ import annotations

# SS2022 cipher written into the inbound and embedded in every link.
SS_METHOD = "2022-blake3-aes-128-gcm"

# PSK length for 2022-blake3-aes-128-gcm.
PSK_BYTES = 16

# Listening port range (inclusive) and its width.
PORT_MIN = 10000
PORT_MAX = 60000
PORT_SPAN = PORT_MAX - PORT_MIN + 1

# Wildcard bind address (dual stack).
LISTEN_ADDRESS = "::"

# Tags inside the sing-box config.
INBOUND_TAG = "ss2022-in"
OUTBOUND_TAG = "direct-out"

# Fragment shown by clients for the generated links.
LINK_TAG = "singbox-ss2022"

# Substituted when the public address cannot be discovered.
PLACEHOLDER_HOST = "YOUR_SERVER_IP"

# Fixed name of the downloaded archive inside the temp directory.
ARCHIVE_FILENAME = "singbox.tar.gz"

# Kernel machine type → release asset architecture token.
ARCH_SYNONYMS: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7",
    "armv7": "armv7",
    "i686": "386",
    "i386": "386",
}

DEFAULT_ARCH = "amd64"

# Packages ensured by the dependency stage, per package manager.
DEPENDENCY_PACKAGES: dict[str, tuple[str, ...]] = {
    "apk": ("ca-certificates", "curl", "tar", "gzip", "openssl", "bash", "coreutils"),
    "apt": ("ca-certificates", "curl", "tar", "gzip", "openssl"),
    "dnf": ("ca-certificates", "curl", "tar", "gzip", "openssl"),
}
