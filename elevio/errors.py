"""
Errors raised by the scoring core and its collaborators.

Hierarchy:
    ElevioError
    ├── InvalidInput         (caller bug, never retried)
    ├── ComputationError     (inconsistency found while computing)
    ├── ConfigurationError   (bad strategy name or parameter)
    └── UpstreamUnavailable  (data source not active)
"""


class ElevioError(Exception):
    """Base class for every error raised by elevio."""


class InvalidInput(ElevioError, ValueError):
    """Malformed or missing required arguments."""


class ComputationError(ElevioError, RuntimeError):
    """Internal inconsistency detected during a scoring or detection pass."""


class ConfigurationError(ElevioError, ValueError):
    """A setting or strategy parameter is unknown or out of range."""


class UpstreamUnavailable(ElevioError):
    """The data source feeding submissions is not active."""
