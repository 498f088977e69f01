"""
config.py - Runtime settings for debt order assembly

Protocol facts (scaling factor, word length) are constants in core.py.
Settings that a deployment may tune live here, with environment overrides:

    DEBT_ORDERS_RESOLVER_TIMEOUT   seconds for the token lookups ("none" disables)
    DEBT_ORDERS_LOG_LEVEL          level passed to configure_logging()
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional


DEFAULT_RESOLVER_TIMEOUT = 10.0

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

ENV_RESOLVER_TIMEOUT = "DEBT_ORDERS_RESOLVER_TIMEOUT"
ENV_LOG_LEVEL = "DEBT_ORDERS_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class AssemblerConfig:
    """
    Settings for DebtOrderAssembler.

    Attributes:
        resolver_timeout: Seconds allowed for all token lookups of one order
                          to complete. None waits indefinitely.
    """
    resolver_timeout: Optional[float] = DEFAULT_RESOLVER_TIMEOUT

    def __post_init__(self):
        if self.resolver_timeout is not None:
            if isinstance(self.resolver_timeout, bool):
                raise TypeError("resolver_timeout must be a number or None")
            object.__setattr__(self, 'resolver_timeout', float(self.resolver_timeout))
            if self.resolver_timeout <= 0:
                raise ValueError(f"resolver_timeout must be positive, got {self.resolver_timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'AssemblerConfig':
        """Build a config from environment variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        raw = environ.get(ENV_RESOLVER_TIMEOUT, "").strip()
        if not raw:
            return cls()
        if raw.lower() == "none":
            return cls(resolver_timeout=None)
        try:
            timeout = float(raw)
        except ValueError as exc:
            raise ValueError(f"{ENV_RESOLVER_TIMEOUT} must be a number or 'none', got {raw!r}") from exc
        return cls(resolver_timeout=timeout)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a basic stderr handler for the package loggers.

    The level defaults to $DEBT_ORDERS_LOG_LEVEL, then INFO.
    """
    level = (level or os.getenv(ENV_LOG_LEVEL, "INFO")).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
