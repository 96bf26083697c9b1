"""Custom exceptions for the publisher OAuth client."""

from __future__ import annotations


class PublisherAuthError(Exception):
    """Base exception for all publisher client errors."""

    pass


class ConfigError(PublisherAuthError):
    """Raised when the OAuth client configuration is missing or malformed."""

    pass


class PathResolutionError(PublisherAuthError):
    """Raised when the token cache location cannot be determined."""

    pass


class TokenStoreError(PublisherAuthError):
    """Base exception for token cache file errors."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)


class NotFoundError(TokenStoreError):
    """Raised when the token cache file is missing or cannot be opened."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        message = f"Token cache not found: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(path, message)


class DecodeError(TokenStoreError):
    """Raised when the token cache file contents are malformed."""

    def __init__(self, path: str, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"Invalid token cache {path}: {reason}")


class WriteError(TokenStoreError):
    """Raised when the token cannot be written to the cache file."""

    def __init__(self, path: str, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"Unable to cache oauth token to {path}: {reason}")


class AuthorizationRequiredError(PublisherAuthError):
    """Raised when no usable cached token exists and interactive auth is disabled."""

    pass


class AuthorizationError(PublisherAuthError):
    """Base exception for failures during the interactive authorization flow."""

    pass


class InputError(AuthorizationError):
    """Raised when the authorization code cannot be read from the terminal."""

    pass


class ListenError(AuthorizationError):
    """Raised when the local callback listener cannot bind its port."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        self.host = host
        self.port = port
        super().__init__(f"Unable to start a web server on {host}:{port}: {reason}")


class BrowserLaunchError(AuthorizationError):
    """Raised when the default browser cannot be opened."""

    pass


class CallbackError(AuthorizationError):
    """Raised when the OAuth callback reports an error instead of a code."""

    pass


class CallbackTimeoutError(AuthorizationError):
    """Raised when the OAuth callback does not arrive within the configured wait."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"No authorization callback received within {timeout:g} seconds")


class ExchangeError(AuthorizationError):
    """Raised when the authorization code cannot be exchanged for a token."""

    pass
