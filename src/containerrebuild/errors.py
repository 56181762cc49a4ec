"""Domain errors for containerrebuild."""


class RebuildError(RuntimeError):
    """Raised when a reconciliation pass cannot continue safely."""


class ResolutionError(RebuildError):
    """Raised when no enabled server matches the requested address."""


class RemoteConnectionError(RebuildError):
    """Raised when the SSH handshake or authentication fails."""


class RemoteExecutionError(RebuildError):
    """Raised when the transport fails while a remote command runs."""


class ListingParseError(RebuildError):
    """Raised for a container listing line that cannot be interpreted."""


class ConfigNotFoundError(RebuildError):
    """Raised when an account configuration file is missing."""
