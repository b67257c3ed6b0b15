from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for relay failures."""


class ConfigError(RelayError):
    """Raised when the relay configuration is invalid."""


class InvalidTransitionError(RelayError):
    """Raised when a run slot is moved out of a terminal state."""


class DocumentMissingError(RelayError):
    """Raised when the status document cannot be read back."""


class LaunchError(RelayError):
    """Raised when a launcher fails to start a job."""

    def __init__(
        self,
        message: str,
        *,
        launcher: str | None = None,
        status_code: int | None = None,
        retriable: bool = True,
    ) -> None:
        super().__init__(message)
        self.launcher = launcher
        self.status_code = status_code
        self.retriable = retriable


class GitHubAPIError(RelayError):
    """Raised when the GitHub REST API answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
