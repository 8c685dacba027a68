"""Exception types raised by augur."""

from __future__ import annotations


class AugurError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(AugurError, ValueError):
    """Invalid predictor / estimator configuration."""


class StatsReaderError(AugurError, RuntimeError):
    """The historical trade-stats reader failed; no snapshot was produced."""

    def __init__(self, scope: str, source_tag: str, instrument: str | None = None):
        self.scope = scope
        self.source_tag = source_tag
        self.instrument = instrument
        target = f"{source_tag}/{instrument}" if instrument else source_tag
        super().__init__(f"failed to load {scope} trade stats for {target}")
