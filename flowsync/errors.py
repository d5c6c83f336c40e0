"""Exception types raised by flowsync."""

from __future__ import annotations


class FlowSyncError(Exception):
    """Base class for flowsync errors."""


class UserInputError(FlowSyncError):
    """An editor action was triggered with missing or invalid input.

    Raised synchronously at the point of action; the action is aborted and
    the user is expected to retry.
    """


class ConfigurationError(FlowSyncError):
    """Invalid or unsupported configuration value."""
