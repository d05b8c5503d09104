"""
Exception hierarchy for toponym resolution.

Missing evidence (no classifier for a type, no log entry for a document,
no cell overlap) is never an error: the affected component simply
contributes nothing and a backoff resolver picks up the slack.
"""

from __future__ import annotations


class ToponymResolutionError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ToponymResolutionError):
    """A resolver was constructed with an invalid combination of options."""


class WeightsFileError(ToponymResolutionError, ValueError):
    """A binary weights file is truncated or otherwise unreadable."""
