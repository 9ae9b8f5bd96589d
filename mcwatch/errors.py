"""Error types raised by the monitoring pipeline."""


class MonitorError(Exception):
    """Base class for all mcwatch errors."""


class ConfigError(MonitorError):
    """Settings could not be loaded or failed validation."""


class StatusConnectionError(MonitorError, ConnectionError):
    """The game server could not be reached."""


class ProtocolError(MonitorError):
    """The status reply was malformed."""


class FileSystemError(MonitorError):
    """The player-data directory could not be listed."""


class SerializationError(MonitorError):
    """A snapshot could not be encoded."""


class NetworkError(MonitorError):
    """The collector endpoint could not be reached."""
