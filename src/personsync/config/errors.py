"""Errors raised while reading settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but cannot be used (not a number, out of range)."""


class MissingConfigurationError(ConfigurationError):
    """A required setting is unset or blank."""
