"""File-backed token cache.

Tokens are stored as JSON in a single file readable only by the owner,
using the field layout of Go's ``oauth2.Token`` so caches written by the
older Go tool remain readable::

    {
      "access_token": "...",
      "token_type": "Bearer",
      "refresh_token": "...",
      "expiry": "2025-01-01T12:00:00Z"
    }
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import stat
import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from publisher.client.exceptions import (
    DecodeError,
    NotFoundError,
    PathResolutionError,
    WriteError,
)

DEFAULT_CREDENTIALS_DIR = ".credentials"
TOKEN_FILE_NAME = urllib.parse.quote_plus("youtube-secret.json")

# Go writes the zero time for tokens without an expiry.
_ZERO_EXPIRY = "0001-01-01T00:00:00Z"
_FRACTION_RE = re.compile(r"(\.\d+)")


@dataclass(frozen=True)
class Token:
    """OAuth2 token as persisted in the cache file.

    Attributes:
        access_token: The OAuth2 access token for API calls.
        refresh_token: Refresh token for offline access, empty if none was issued.
        token_type: Token type, normally "Bearer".
        expiry: UTC time when the access token expires, None if unknown.
    """

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry: datetime | None = None

    def is_expired(self, buffer_seconds: int = 10) -> bool:
        """Check if the access token has expired, with a safety buffer."""
        if self.expiry is None:
            return False
        now = datetime.now(timezone.utc)
        return now >= self.expiry - timedelta(seconds=buffer_seconds)

    def is_usable(self) -> bool:
        """Whether the token can back an authenticated client.

        An expired access token is still usable when a refresh token is
        present, since the HTTP client refreshes it on first use.
        """
        if not self.access_token:
            return False
        return not self.is_expired() or bool(self.refresh_token)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
        }
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        if self.expiry is not None:
            data["expiry"] = self.expiry.isoformat().replace("+00:00", "Z")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        """Create Token from dictionary."""
        access_token = data["access_token"]
        if not isinstance(access_token, str):
            raise ValueError("access_token must be a string")
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or "",
            token_type=data.get("token_type") or "Bearer",
            expiry=_parse_expiry(data.get("expiry")),
        )


def _parse_expiry(value: Any) -> datetime | None:
    if value is None or value == "" or value == _ZERO_EXPIRY:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expiry must be an RFC 3339 string, got {value!r}")
    # Go writes nanoseconds; datetime keeps microseconds.
    value = _FRACTION_RE.sub(lambda m: m.group(1)[:7].ljust(7, "0"), value)
    expiry = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry.astimezone(timezone.utc)


def resolve_cache_path(secrets_path: str | Path | None = None) -> Path:
    """Return the token cache file path for the given secrets directory.

    With no secrets directory, the cache lives in ``~/.credentials``, which
    is created (owner-only) when missing.

    Raises:
        PathResolutionError: If the user's home directory cannot be determined.
    """
    if secrets_path:
        return Path(secrets_path) / TOKEN_FILE_NAME

    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise PathResolutionError(
            f"Unable to get path to cached credential file: {e}"
        ) from e

    credentials_dir = home / DEFAULT_CREDENTIALS_DIR
    try:
        credentials_dir.mkdir(mode=stat.S_IRWXU, parents=True, exist_ok=True)
    except OSError as e:
        raise PathResolutionError(
            f"Unable to create credentials directory {credentials_dir}: {e}"
        ) from e
    return credentials_dir / TOKEN_FILE_NAME


def load(path: str | Path) -> Token:
    """Read a token from the cache file.

    Raises:
        NotFoundError: If the file does not exist or cannot be opened.
        DecodeError: If the file does not contain a valid token.
    """
    path = Path(path)
    try:
        f = path.open(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFoundError(str(path)) from e
    except OSError as e:
        raise NotFoundError(str(path), e.strerror or str(e)) from e

    with f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(str(path), str(e)) from e
        except OSError as e:
            raise NotFoundError(str(path), e.strerror or str(e)) from e

    if not isinstance(data, dict):
        raise DecodeError(str(path), "expected a JSON object")
    try:
        return Token.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(str(path), f"{type(e).__name__}: {e}") from e


def save(path: str | Path, token: Token) -> None:
    """Write a token to the cache file with owner read/write permissions.

    The token is written to a sibling temp file which then replaces the
    cache file, so readers never see a partially written token.

    Raises:
        WriteError: On any I/O or serialization failure.
    """
    path = Path(path)
    temp_path = path.with_name(path.name + ".tmp")
    logger.info("Saving credential file to {}", path)

    try:
        payload = json.dumps(token.to_dict(), indent=2)
    except (TypeError, ValueError) as e:
        raise WriteError(str(path), str(e)) from e

    try:
        fd = os.open(
            temp_path,
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
            stat.S_IRUSR | stat.S_IWUSR,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.write("\n")
        temp_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0600
        os.replace(temp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise WriteError(str(path), e.strerror or str(e)) from e
