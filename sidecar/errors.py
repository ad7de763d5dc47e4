"""Exceptions raised by the telemetry sidecar."""


class SidecarError(Exception):
    """Base class for sidecar errors."""


class SourceError(SidecarError):
    """The watched directory is missing or cannot be listed."""


class ConfigError(SidecarError, ValueError):
    """Configuration is missing or malformed."""
