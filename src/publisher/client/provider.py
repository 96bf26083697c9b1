"""Credential provider: cached token or interactive authorization.

Per invocation the provider moves through::

    Start -> CacheHit -> Done
    Start -> CacheMiss -> SkipAuthDenied
    Start -> CacheMiss -> Authorizing -> AuthFailed
    Start -> CacheMiss -> Authorizing -> Authorized -> Persisting -> Done | PersistFailed

Every terminal state other than Done raises. There are no retries; the
caller re-invokes to try again.
"""

from __future__ import annotations

from datetime import timezone

from google.auth.transport.requests import AuthorizedSession
from google.oauth2.credentials import Credentials
from loguru import logger

from publisher.client import token_store
from publisher.client.authorizer import (
    CodeSource,
    InteractiveAuthorizer,
    create_code_source,
)
from publisher.client.config import (
    CALLBACK_PORT,
    AuthStrategy,
    CredentialOptions,
    OAuthClientConfig,
    with_scopes,
)
from publisher.client.exceptions import (
    AuthorizationRequiredError,
    ConfigError,
    TokenStoreError,
)
from publisher.client.token_store import Token


class CredentialProvider:
    """Hands out authenticated HTTP clients backed by a cached OAuth token.

    Args:
        strategy: How the authorization code is obtained when a new token is
            needed. Fixed for the lifetime of the provider since it depends on
            how the OAuth client was registered.
        code_source: Explicit code source, overriding ``strategy``.
        callback_port: Port for the local callback listener.
        callback_timeout: Seconds to wait for the local callback. None waits
            indefinitely.

    Example:
        provider = CredentialProvider(AuthStrategy.PROMPT)
        session = provider.get_client(
            "https://www.googleapis.com/auth/youtube.upload",
            CredentialOptions(client_config=load_client_config("client_secrets.json")),
        )
        session.get("https://www.googleapis.com/youtube/v3/channels?part=id&mine=true")
    """

    def __init__(
        self,
        strategy: AuthStrategy = AuthStrategy.PROMPT,
        code_source: CodeSource | None = None,
        callback_port: int = CALLBACK_PORT,
        callback_timeout: float | None = None,
    ) -> None:
        self._strategy = strategy
        self._code_source = code_source or create_code_source(
            strategy, port=callback_port, timeout=callback_timeout
        )

    @property
    def strategy(self) -> AuthStrategy:
        return self._strategy

    def get_client(
        self,
        scope: str | list[str] | None,
        options: CredentialOptions,
        force_refresh: bool = False,
    ) -> AuthorizedSession:
        """Return an HTTP session that sends the user's access token.

        The session refreshes an expired access token with the refresh token;
        such refreshes are not written back to the cache.

        Raises:
            ConfigError: If ``options`` carries no OAuth client config.
            PathResolutionError: If the cache location cannot be determined.
            AuthorizationRequiredError: If no usable token is cached and
                ``options.skip_auth`` is set.
            AuthorizationError: If the interactive flow fails.
            WriteError: If a newly obtained token cannot be cached.
        """
        authorizer = self._authorizer(scope, options)
        token = self._get_token(authorizer, options, force_refresh)
        return build_client(token, authorizer.client_config)

    def get_token(
        self,
        scope: str | list[str] | None,
        options: CredentialOptions,
        force_refresh: bool = False,
    ) -> Token:
        """Return a usable token, authorizing and caching a new one if needed.

        Raises the same errors as :meth:`get_client`.
        """
        return self._get_token(self._authorizer(scope, options), options, force_refresh)

    def _authorizer(
        self, scope: str | list[str] | None, options: CredentialOptions
    ) -> InteractiveAuthorizer:
        if options.client_config is None:
            raise ConfigError("OAuth2 config not present")
        client_config = with_scopes(options.client_config, scope)
        return InteractiveAuthorizer(client_config, self._code_source)

    def _get_token(
        self,
        authorizer: InteractiveAuthorizer,
        options: CredentialOptions,
        force_refresh: bool,
    ) -> Token:
        cache_path = token_store.resolve_cache_path(options.secrets_path)

        if not force_refresh:
            try:
                cached = token_store.load(cache_path)
            except TokenStoreError as e:
                logger.info("No usable cached token: {}", e)
                miss: Exception = e
            else:
                if cached.is_usable():
                    logger.info("Using cached token from {}", cache_path)
                    return cached
                logger.info("Cached token at {} is expired and cannot be refreshed", cache_path)
                miss = AuthorizationRequiredError(f"Cached token at {cache_path} has expired")
        else:
            miss = AuthorizationRequiredError("Re-authorization requested")

        if options.skip_auth:
            raise AuthorizationRequiredError(f"User authorization required, got: {miss}") from miss

        logger.info("Starting {} authorization flow", self._strategy.value)
        token = authorizer.authorize()
        token_store.save(cache_path, token)
        logger.info("Authorization successful")
        return token


def build_client(token: Token, client_config: OAuthClientConfig) -> AuthorizedSession:
    """Build an authorized requests session for ``token``."""
    expiry = None
    if token.expiry is not None:
        # google-auth compares against naive UTC datetimes
        expiry = token.expiry.astimezone(timezone.utc).replace(tzinfo=None)

    credentials = Credentials(
        token=token.access_token,
        refresh_token=token.refresh_token or None,
        token_uri=client_config.token_uri,
        client_id=client_config.client_id,
        client_secret=client_config.client_secret,
        scopes=list(client_config.scopes) or None,
        expiry=expiry,
    )
    return AuthorizedSession(credentials)


def get_client(
    scope: str | list[str] | None,
    options: CredentialOptions,
    strategy: AuthStrategy = AuthStrategy.PROMPT,
) -> AuthorizedSession:
    """Return an authenticated session using a provider for ``strategy``."""
    return CredentialProvider(strategy).get_client(scope, options)
