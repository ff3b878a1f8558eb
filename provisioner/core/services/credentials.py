"""
Credential generator — listening port and SS2022 pre-shared key.

Both values come from ordered fallback chains built on
``first_success``. Each chain ends with a strategy that cannot be
unavailable (the clock), so generation always terminates.

Port chain:
    explicit value → shuf → openssl rand -hex 2 → Python RNG
    → shell $RANDOM → unix time

Secret chain (16 random bytes, base64):
    explicit value → sing-box generate rand → openssl rand -base64
    → Python secrets → "psk-<unix time>" (weak, flagged)
"""

from __future__ import annotations

import base64
import binascii
import logging
import random
import secrets
import time
from collections.abc import Callable

from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.constants import PORT_MAX, PORT_MIN, PORT_SPAN, PSK_BYTES
from provisioner.core.engine.fallback import Attempt, Provider, first_success
from provisioner.core.errors import ProvisionError
from provisioner.core.models.credential import Credential, CredentialOrigin

logger = logging.getLogger(__name__)

STAGE = "credentials"

Clock = Callable[[], float]


def reduce_to_port(value: int) -> int:
    """Fold an arbitrary non-negative integer into the port range."""
    return PORT_MIN + value % PORT_SPAN


def parse_user_port(raw: str) -> int:
    """Validate an explicit port.

    Raises:
        ProvisionError: If ``raw`` is not all ASCII digits or is out of range.
    """
    value = raw.strip()
    if not (value.isascii() and value.isdigit()):
        raise ProvisionError(STAGE, f"Port must be numeric, got {raw!r}")
    port = int(value)
    if not PORT_MIN <= port <= PORT_MAX:
        raise ProvisionError(STAGE, f"Port must be between {PORT_MIN} and {PORT_MAX}, got {port}")
    return port


def is_valid_psk(value: str) -> bool:
    """Whether ``value`` is base64 for exactly PSK_BYTES bytes."""
    try:
        return len(base64.b64decode(value, validate=True)) == PSK_BYTES
    except (binascii.Error, ValueError):
        return False


# ── Port strategies ─────────────────────────────────────────────


def _port_from_shuf(runner: CommandRunner, timeout: int) -> int | None:
    if not runner.has("shuf"):
        return None
    receipt = runner.run(["shuf", "-i", f"{PORT_MIN}-{PORT_MAX}", "-n", "1"], timeout=timeout)
    if receipt.failed:
        return None
    try:
        port = int(receipt.output.strip())
    except ValueError:
        return None
    return port if PORT_MIN <= port <= PORT_MAX else None


def _port_from_openssl(runner: CommandRunner, timeout: int) -> int | None:
    if not runner.has("openssl"):
        return None
    receipt = runner.run(["openssl", "rand", "-hex", "2"], timeout=timeout)
    if receipt.failed:
        return None
    try:
        return reduce_to_port(int(receipt.output.strip(), 16))
    except ValueError:
        return None


def _port_from_shell_random(runner: CommandRunner, timeout: int) -> int | None:
    shell = "bash" if runner.has("bash") else "sh"
    if not runner.has(shell):
        return None
    receipt = runner.run([shell, "-c", 'printf %s "${RANDOM-}"'], timeout=timeout)
    raw = receipt.output.strip() if receipt.ok else ""
    if not raw.isdigit():
        return None
    return reduce_to_port(int(raw))


def port_providers(
    runner: CommandRunner,
    user_port: str | None = None,
    timeout: int = 10,
    rng: random.Random | None = None,
    clock: Clock = time.time,
) -> list[Provider[int]]:
    """The default port chain, in order."""
    rng = rng or random.SystemRandom()
    return [
        Provider(
            "explicit",
            lambda: parse_user_port(user_port) if user_port else None,
            CredentialOrigin.USER_SUPPLIED.value,
        ),
        Provider(
            "shuf",
            lambda: _port_from_shuf(runner, timeout),
            CredentialOrigin.TOOL_GENERATED.value,
        ),
        Provider(
            "openssl",
            lambda: _port_from_openssl(runner, timeout),
            CredentialOrigin.TOOL_GENERATED.value,
        ),
        Provider(
            "python",
            lambda: rng.randint(PORT_MIN, PORT_MAX),
            CredentialOrigin.RANDOM_GENERATED.value,
        ),
        Provider(
            "shell-random",
            lambda: _port_from_shell_random(runner, timeout),
            CredentialOrigin.TOOL_GENERATED.value,
        ),
        Provider(
            "clock",
            lambda: reduce_to_port(int(clock())),
            CredentialOrigin.WEAK_FALLBACK.value,
        ),
    ]


def generate_port(providers: list[Provider[int]]) -> Attempt[int]:
    """Run the port chain.

    Raises:
        ProvisionError: If an explicit port is invalid, or (only with a
            custom chain) every provider was unavailable.
    """
    attempt = first_success(providers, chain="port")
    if attempt is None:
        raise ProvisionError(STAGE, "No port source available")
    if attempt.tag != CredentialOrigin.USER_SUPPLIED.value:
        logger.info("Using random port %d (%s)", attempt.value, attempt.name)
    return attempt


# ── Secret strategies ───────────────────────────────────────────


def _psk_from_command(runner: CommandRunner, cmd: list[str], timeout: int) -> str | None:
    receipt = runner.run(cmd, timeout=timeout)
    if receipt.failed:
        return None
    value = "".join(receipt.output.split())
    return value if is_valid_psk(value) else None


def _psk_from_binary(runner: CommandRunner, binary: str | None, timeout: int) -> str | None:
    if not binary:
        return None
    return _psk_from_command(
        runner, [binary, "generate", "rand", "--base64", str(PSK_BYTES)], timeout,
    )


def _psk_from_openssl(runner: CommandRunner, timeout: int) -> str | None:
    if not runner.has("openssl"):
        return None
    return _psk_from_command(runner, ["openssl", "rand", "-base64", str(PSK_BYTES)], timeout)


def _psk_from_python() -> str:
    return base64.b64encode(secrets.token_bytes(PSK_BYTES)).decode("ascii")


def _explicit_secret(user_secret: str | None) -> str | None:
    if not user_secret:
        return None
    if not is_valid_psk(user_secret):
        logger.warning(
            "Supplied password is not base64 for %d bytes; SS2022 clients may reject it",
            PSK_BYTES,
        )
    return user_secret


def secret_providers(
    runner: CommandRunner,
    user_secret: str | None = None,
    binary_path: str | None = None,
    timeout: int = 10,
    clock: Clock = time.time,
) -> list[Provider[str]]:
    """The default secret chain, in order."""
    return [
        Provider(
            "explicit",
            lambda: _explicit_secret(user_secret),
            CredentialOrigin.USER_SUPPLIED.value,
        ),
        Provider(
            "sing-box",
            lambda: _psk_from_binary(runner, binary_path, timeout),
            CredentialOrigin.TOOL_GENERATED.value,
        ),
        Provider(
            "openssl",
            lambda: _psk_from_openssl(runner, timeout),
            CredentialOrigin.TOOL_GENERATED.value,
        ),
        Provider(
            "python",
            _psk_from_python,
            CredentialOrigin.RANDOM_GENERATED.value,
        ),
        Provider(
            "clock",
            lambda: f"psk-{int(clock())}",
            CredentialOrigin.WEAK_FALLBACK.value,
        ),
    ]


def generate_secret(
    providers: list[Provider[str]],
    require_strong: bool = False,
) -> Attempt[str]:
    """Run the secret chain.

    Raises:
        ProvisionError: If only the weak fallback was available and
            ``require_strong`` is set.
    """
    attempt = first_success(providers, chain="secret")
    if attempt is None:
        raise ProvisionError(STAGE, "No secret source available")

    if attempt.tag == CredentialOrigin.WEAK_FALLBACK.value:
        if require_strong:
            raise ProvisionError(
                STAGE, "No random source for the PSK and require_strong_secret is set",
            )
        logger.warning(
            "No random source for the PSK; using a WEAK timestamp secret. Replace "
            "it in the config before exposing this server",
        )
    return attempt


def build_credential(port: Attempt[int], secret: Attempt[str]) -> Credential:
    """Combine the two chain results into the run's Credential."""
    return Credential(
        port=port.value,
        secret=secret.value,
        port_origin=CredentialOrigin(port.tag),
        secret_origin=CredentialOrigin(secret.tag),
    )
