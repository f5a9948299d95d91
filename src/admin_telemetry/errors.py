"""Exception types raised by admin_telemetry."""


class TelemetryError(Exception):
    """Base class for admin_telemetry errors."""


class ConfigError(TelemetryError):
    """Raised when an environment setting cannot be parsed."""
