"""Exceptions raised by aegis_shield."""


class AegisShieldError(Exception):
    """Base class for all aegis_shield errors."""


class NothingToRestoreError(AegisShieldError):
    """Raised when a restore is requested without a saved mapping."""

    def __init__(self, message: str = "No saved mapping; scrub some text first.") -> None:
        super().__init__(message)


class SemanticSourceError(AegisShieldError):
    """The optional semantic source failed to load or to run inference.

    Recoverable: callers fall back to structural matches.
    """


class ConfigError(AegisShieldError):
    """Invalid configuration value."""
