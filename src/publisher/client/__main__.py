"""CLI entry point for publisher.client.

Usage:
    python -m publisher.client login    # Authorize and cache a token
    python -m publisher.client token    # Show the cached token
    python -m publisher.client logout   # Delete the cached token
"""

import argparse
import sys

from loguru import logger
from pydantic import ValidationError

from publisher.client import token_store
from publisher.client.config import AuthStrategy, ClientSettings
from publisher.client.exceptions import (
    AuthorizationRequiredError,
    ConfigError,
    PublisherAuthError,
)
from publisher.client.logging import setup_logging
from publisher.client.provider import CredentialProvider
from publisher.client.token_store import Token


def _settings(args: argparse.Namespace) -> ClientSettings:
    """Load settings from the environment, applying command-line overrides."""
    overrides = {}
    if getattr(args, "secrets_path", None):
        overrides["secrets_path"] = args.secrets_path
    if getattr(args, "client_secrets", None):
        overrides["client_secrets_file"] = args.client_secrets
    if getattr(args, "scopes", None):
        overrides["scopes"] = args.scopes
    if getattr(args, "strategy", None):
        overrides["auth_strategy"] = args.strategy
    if getattr(args, "skip_auth", False):
        overrides["skip_auth"] = True
    if getattr(args, "callback_timeout", None) is not None:
        overrides["callback_timeout"] = args.callback_timeout
    return ClientSettings(**overrides)


def _cached_token(secrets_path: str) -> Token | None:
    """Return the token currently in the cache, or None if there is none."""
    try:
        return token_store.load(token_store.resolve_cache_path(secrets_path or None))
    except PublisherAuthError:
        return None


def cmd_login(args: argparse.Namespace) -> int:
    """Authorize with the provider and cache the token."""
    settings = _settings(args)
    cached = None if args.force else _cached_token(settings.secrets_path)
    try:
        options = settings.credential_options()
        provider = CredentialProvider(
            settings.auth_strategy,
            callback_port=settings.callback_port,
            callback_timeout=settings.callback_timeout,
        )
        token = provider.get_token(settings.get_scopes(), options, force_refresh=args.force)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except AuthorizationRequiredError as e:
        print(f"{e}\nRun without --skip-auth to authorize.", file=sys.stderr)
        return 1
    except PublisherAuthError as e:
        logger.opt(exception=e).debug("Authorization failed")
        print(f"Authorization failed: {e}", file=sys.stderr)
        return 1

    if cached is not None and token == cached:
        print("Using cached token.")
    else:
        print("Authorization successful.")
    if token.expiry is not None:
        print(f"Token expires at: {token.expiry.isoformat()}")
    return 0


def cmd_token(args: argparse.Namespace) -> int:
    """Print details of the cached token."""
    settings = _settings(args)
    try:
        cache_path = token_store.resolve_cache_path(settings.secrets_path or None)
        token = token_store.load(cache_path)
    except PublisherAuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Cache file: {cache_path}")
    print(f"Token type: {token.token_type}")
    print(f"Refresh token: {'yes' if token.refresh_token else 'no'}")
    if token.expiry is not None:
        state = "expired" if token.is_expired() else "valid"
        print(f"Expires at: {token.expiry.isoformat()} ({state})")
    if args.show_token:
        print(f"\nAccess Token:\n{token.access_token}")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    """Delete the cached token file."""
    settings = _settings(args)
    try:
        cache_path = token_store.resolve_cache_path(settings.secrets_path or None)
    except PublisherAuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if cache_path.exists():
            cache_path.unlink()
            print(f"Credentials cleared from {cache_path}")
        else:
            print("No cached credentials found.")
        return 0
    except OSError as e:
        print(f"Failed to clear credentials: {e}", file=sys.stderr)
        return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--secrets-path",
        help="Directory for the cached token (or set YOUTUBE_SECRETS_PATH env var)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="publisher-auth",
        description="Authorize the YouTube publisher and manage its cached OAuth token",
    )
    parser.add_argument(
        "--log-level",
        help="Minimum log level (or set YOUTUBE_LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write logs to stderr as JSON lines",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # login subcommand
    login_parser = subparsers.add_parser(
        "login",
        help="Authorize access and cache the token",
    )
    _add_common_arguments(login_parser)
    login_parser.add_argument(
        "--client-secrets",
        help="Path to client_secrets.json (or set YOUTUBE_CLIENT_SECRETS_FILE env var)",
    )
    login_parser.add_argument(
        "--scopes",
        help="Comma-separated OAuth scopes (or set YOUTUBE_SCOPES env var)",
    )
    login_parser.add_argument(
        "--strategy",
        choices=[s.value for s in AuthStrategy],
        help="How to receive the authorization code (or set YOUTUBE_AUTH_STRATEGY env var)",
    )
    login_parser.add_argument(
        "--callback-timeout",
        type=float,
        help="Seconds to wait for the browser callback (default: wait indefinitely)",
    )
    login_parser.add_argument(
        "--skip-auth",
        action="store_true",
        help="Fail instead of starting an interactive authorization",
    )
    login_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Re-authorize even if a cached token exists",
    )
    login_parser.set_defaults(func=cmd_login)

    # token subcommand
    token_parser = subparsers.add_parser(
        "token",
        help="Show the cached token",
    )
    _add_common_arguments(token_parser)
    token_parser.add_argument(
        "--show-token",
        action="store_true",
        help="Print the access token to stdout",
    )
    token_parser.set_defaults(func=cmd_token)

    # logout subcommand
    logout_parser = subparsers.add_parser(
        "logout",
        help="Delete the cached token",
    )
    _add_common_arguments(logout_parser)
    logout_parser.set_defaults(func=cmd_logout)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        base = ClientSettings()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    setup_logging(
        json_logs=args.json_logs or base.json_logs,
        log_level=args.log_level or base.log_level,
    )

    try:
        return args.func(args)
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
