"""Configuration for the publisher OAuth client.

Settings are read from ``YOUTUBE_*`` environment variables (or a ``.env``
file) with pydantic-settings and turned into immutable
:class:`CredentialOptions` for the credential provider.
"""

from __future__ import annotations

import dataclasses
import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from publisher.client.exceptions import ConfigError

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Redirect target for "installed application" clients: the provider shows
# the code to the user instead of redirecting anywhere.
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

CALLBACK_HOST = "localhost"
CALLBACK_PORT = 8090

YOUTUBE_UPLOAD_SCOPE = "https://www.googleapis.com/auth/youtube.upload"

MISSING_CLIENT_SECRETS_MESSAGE = """
Please configure OAuth 2.0
To make this tool run, you need to populate the client_secrets.json file
found at:
   {path}
with information from the Google Cloud Console
https://cloud.google.com/console
For more information about the client_secrets.json file format, please visit:
https://developers.google.com/api-client-library/python/guide/aaa_client_secrets
"""


class AuthStrategy(str, enum.Enum):
    """How the authorization code is obtained from the user.

    PROMPT works with OAuth clients registered as installed applications:
    the user copies the code from the browser into the terminal.
    LOCAL_CALLBACK needs a web application client whose authorized redirect
    URIs include ``http://localhost:8090``.
    """

    PROMPT = "prompt"
    LOCAL_CALLBACK = "local-callback"


@dataclass(frozen=True)
class OAuthClientConfig:
    """OAuth2 client registration with the provider.

    Attributes:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        scopes: Scopes requested during authorization.
        redirect_uri: Redirect target sent to the provider.
        auth_uri: Provider authorization endpoint.
        token_uri: Provider token endpoint.
    """

    client_id: str
    client_secret: str
    scopes: tuple[str, ...] = ()
    redirect_uri: str = OOB_REDIRECT_URI
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    def to_client_config(self) -> dict[str, Any]:
        """Return the client config in Google's client_secrets.json layout."""
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": [self.redirect_uri],
            }
        }


def with_redirect_uri(config: OAuthClientConfig, redirect_uri: str) -> OAuthClientConfig:
    """Return a copy of ``config`` that redirects to ``redirect_uri``."""
    return dataclasses.replace(config, redirect_uri=redirect_uri)


def with_scopes(config: OAuthClientConfig, scope: str | list[str] | None) -> OAuthClientConfig:
    """Return a copy of ``config`` requesting ``scope``.

    Accepts a single scope, a space or comma separated string, or a list.
    An empty value keeps the scopes already in ``config``.
    """
    scopes = _split_scopes(scope)
    if not scopes:
        return config
    return dataclasses.replace(config, scopes=tuple(scopes))


def _split_scopes(scope: str | list[str] | None) -> list[str]:
    if not scope:
        return []
    if isinstance(scope, str):
        scope = scope.replace(",", " ").split()
    return [s.strip() for s in scope if s.strip()]


def load_client_config(path: str | Path, scopes: list[str] | None = None) -> OAuthClientConfig:
    """Load an OAuth client from a Google client_secrets.json file.

    Both ``installed`` and ``web`` client types are accepted.

    Raises:
        ConfigError: If the file is missing or does not describe an OAuth client.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(MISSING_CLIENT_SECRETS_MESSAGE.format(path=path)) from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unable to read client secret file {path}: {e}") from e

    section = None
    if isinstance(data, dict):
        section = data.get("installed") or data.get("web")
    if not isinstance(section, dict):
        raise ConfigError(
            f"Client secret file {path} must contain an 'installed' or 'web' section"
        )

    missing = [key for key in ("client_id", "client_secret") if not section.get(key)]
    if missing:
        raise ConfigError(f"Client secret file {path} is missing {', '.join(missing)}")

    redirect_uris = section.get("redirect_uris") or [OOB_REDIRECT_URI]
    return OAuthClientConfig(
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        scopes=tuple(scopes or ()),
        redirect_uri=redirect_uris[0],
        auth_uri=section.get("auth_uri", GOOGLE_AUTH_URI),
        token_uri=section.get("token_uri", GOOGLE_TOKEN_URI),
    )


@dataclass(frozen=True)
class CredentialOptions:
    """Options for the credential provider, fixed for one invocation.

    Attributes:
        secrets_path: Directory holding the token cache. Empty means
            ``~/.credentials``.
        skip_auth: Fail instead of prompting when no usable token is cached.
        client_config: OAuth client registration. Required.
    """

    secrets_path: str | None = None
    skip_auth: bool = False
    client_config: OAuthClientConfig | None = None


class ClientSettings(BaseSettings):
    """Client settings loaded from environment variables.

    Environment variables (all optional):
    - YOUTUBE_SECRETS_PATH: Directory for the cached token
    - YOUTUBE_SKIP_AUTH: Never start an interactive authorization
    - YOUTUBE_CLIENT_SECRETS_FILE: Path to client_secrets.json
    - YOUTUBE_CLIENT_ID / YOUTUBE_CLIENT_SECRET: OAuth client, overrides the file
    - YOUTUBE_SCOPES: Comma-separated scopes
    - YOUTUBE_AUTH_STRATEGY: "prompt" or "local-callback"
    - YOUTUBE_CALLBACK_TIMEOUT: Seconds to wait for the browser callback
    """

    model_config = SettingsConfigDict(
        env_prefix="YOUTUBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    secrets_path: str = ""
    skip_auth: bool = False

    client_secrets_file: str = "client_secrets.json"
    client_id: str = ""
    client_secret: str = ""
    scopes: str = YOUTUBE_UPLOAD_SCOPE

    auth_strategy: AuthStrategy = AuthStrategy.PROMPT
    callback_port: int = CALLBACK_PORT
    # No default: without a value the callback wait is unbounded.
    callback_timeout: float | None = None

    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("callback_timeout")
    @classmethod
    def validate_callback_timeout(cls, v: float | None) -> float | None:
        """Reject non-positive timeouts."""
        if v is not None and v <= 0:
            raise ValueError("callback_timeout must be positive")
        return v

    def get_scopes(self) -> list[str]:
        """Get the list of requested scopes."""
        return _split_scopes(self.scopes)

    def client_config(self) -> OAuthClientConfig:
        """Build the OAuth client from explicit credentials or the secrets file.

        Raises:
            ConfigError: If neither source provides a client.
        """
        if self.client_id and self.client_secret:
            return OAuthClientConfig(
                client_id=self.client_id,
                client_secret=self.client_secret,
                scopes=tuple(self.get_scopes()),
            )
        return load_client_config(self.client_secrets_file, self.get_scopes())

    def credential_options(self) -> CredentialOptions:
        """Build provider options from these settings."""
        return CredentialOptions(
            secrets_path=self.secrets_path or None,
            skip_auth=self.skip_auth,
            client_config=self.client_config(),
        )
