"""Publisher client - cached OAuth2 credentials for the YouTube publisher CLI.

Obtains a user's OAuth2 token through a three-legged authorization flow the
first time, caches it in ~/.credentials (or a configured directory) with
owner-only permissions, and reuses it on later runs.

Example:
    from publisher.client import CredentialOptions, CredentialProvider, load_client_config

    options = CredentialOptions(client_config=load_client_config("client_secrets.json"))
    session = CredentialProvider().get_client(
        "https://www.googleapis.com/auth/youtube.upload", options
    )
    response = session.get("https://www.googleapis.com/youtube/v3/channels?part=id&mine=true")
"""

from publisher.client.authorizer import (
    InteractiveAuthorizer,
    LocalCallbackCodeSource,
    PromptCodeSource,
)
from publisher.client.config import (
    YOUTUBE_UPLOAD_SCOPE,
    AuthStrategy,
    ClientSettings,
    CredentialOptions,
    OAuthClientConfig,
    load_client_config,
    with_redirect_uri,
)
from publisher.client.exceptions import (
    AuthorizationError,
    AuthorizationRequiredError,
    BrowserLaunchError,
    CallbackError,
    CallbackTimeoutError,
    ConfigError,
    DecodeError,
    ExchangeError,
    InputError,
    ListenError,
    NotFoundError,
    PathResolutionError,
    PublisherAuthError,
    WriteError,
)
from publisher.client.provider import CredentialProvider, get_client
from publisher.client.token_store import Token

__version__ = "0.1.0"
__all__ = [
    "AuthStrategy",
    "AuthorizationError",
    "AuthorizationRequiredError",
    "BrowserLaunchError",
    "CallbackError",
    "CallbackTimeoutError",
    "ClientSettings",
    "ConfigError",
    "CredentialOptions",
    "CredentialProvider",
    "DecodeError",
    "ExchangeError",
    "InputError",
    "InteractiveAuthorizer",
    "ListenError",
    "LocalCallbackCodeSource",
    "NotFoundError",
    "OAuthClientConfig",
    "PathResolutionError",
    "PromptCodeSource",
    "PublisherAuthError",
    "Token",
    "WriteError",
    "YOUTUBE_UPLOAD_SCOPE",
    "get_client",
    "load_client_config",
    "with_redirect_uri",
]
