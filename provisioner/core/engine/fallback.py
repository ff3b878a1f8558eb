"""
Fallback chains — one "first success wins" combinator for all of them.

Port sources, secret sources, download URLs and address-echo endpoints
are all ordered lists of providers. A provider returns a value, or
None to mean "unavailable / failed, try the next one". Providers are
tried strictly in order; the first value ends the chain and later
providers are never called.

Transient failures stay inside the chain (logged at INFO). Fatal
conditions are raised by the provider itself as ``ProvisionError`` and
propagate untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Provider(Generic[T]):
    """One named strategy in a fallback chain."""

    name: str
    produce: Callable[[], T | None]
    tag: str = ""                # free-form label carried into the result (e.g. an origin)


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """The winning provider and its value."""

    provider: Provider[T]
    value: T
    tried: int                   # how many providers were consulted, winner included

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def tag(self) -> str:
        return self.provider.tag


def first_success(providers: Iterable[Provider[T]], *, chain: str = "") -> Attempt[T] | None:
    """Run ``providers`` in order and return the first non-None result.

    Args:
        providers: Ordered strategies.
        chain: Label used in log lines.

    Returns:
        The winning Attempt, or None when every provider was skipped.
    """
    tried = 0
    for provider in providers:
        tried += 1
        value = provider.produce()
        if value is not None:
            logger.debug("%s: '%s' succeeded after %d attempt(s)", chain, provider.name, tried)
            return Attempt(provider=provider, value=value, tried=tried)
        logger.info("%s: '%s' unavailable, trying next", chain, provider.name)

    logger.debug("%s: all %d provider(s) exhausted", chain, tried)
    return None
