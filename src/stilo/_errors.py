"""Stilo error hierarchy.

All stilo-specific errors inherit from StiloError for easy catching.
None of them is allowed to terminate the dev server: each is caught at the
boundary of the callback that raised it and reported as a diagnostic.
"""


class StiloError(Exception):
    """Base error for all stilo operations."""


class ConfigError(StiloError):
    """Invalid or missing configuration."""


class FilesystemError(StiloError):
    """A directory could not be read while building the file tree."""


class WatcherError(StiloError):
    """The filesystem watch backend reported an internal error."""


class DeliveryError(StiloError):
    """A frame could not be delivered to a single client connection."""


class BuildError(StiloError):
    """The external stylesheet build step failed."""
