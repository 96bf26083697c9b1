"""Unit tests for the token cache file."""

import json
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock

import pytest

from publisher.client import token_store
from publisher.client.exceptions import (
    DecodeError,
    NotFoundError,
    PathResolutionError,
    WriteError,
)
from publisher.client.token_store import TOKEN_FILE_NAME, Token


class TestToken:
    """Tests for Token dataclass."""

    def test_is_expired_with_future_expiry(self) -> None:
        """Token with future expiry is not expired."""
        token = Token(
            access_token="test-token",
            expiry=datetime.now(timezone.utc) + timedelta(hours=1),
        )
        assert token.is_expired() is False

    def test_is_expired_with_past_expiry(self) -> None:
        """Token with past expiry is expired."""
        token = Token(
            access_token="test-token",
            expiry=datetime.now(timezone.utc) - timedelta(seconds=100),
        )
        assert token.is_expired() is True

    def test_is_expired_respects_buffer(self) -> None:
        """Token expiring within the buffer counts as expired."""
        token = Token(
            access_token="test-token",
            expiry=datetime.now(timezone.utc) + timedelta(seconds=30),
        )
        assert token.is_expired(buffer_seconds=60) is True
        assert token.is_expired(buffer_seconds=10) is False

    def test_no_expiry_never_expires(self) -> None:
        """Token without expiry is treated as unexpired."""
        assert Token(access_token="test-token").is_expired() is False

    def test_is_usable(self) -> None:
        """Expired tokens are usable only with a refresh token."""
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        assert Token(access_token="a", expiry=past).is_usable() is False
        assert Token(access_token="a", refresh_token="r", expiry=past).is_usable() is True
        assert Token(access_token="").is_usable() is False

    def test_to_dict(self) -> None:
        """to_dict uses the oauth2.Token field names and RFC 3339 expiry."""
        token = Token(
            access_token="test-token",
            refresh_token="refresh",
            expiry=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        )
        assert token.to_dict() == {
            "access_token": "test-token",
            "token_type": "Bearer",
            "refresh_token": "refresh",
            "expiry": "2025-01-01T12:00:00Z",
        }

    def test_to_dict_omits_empty_fields(self) -> None:
        """Missing refresh token and expiry are left out."""
        assert Token(access_token="t").to_dict() == {
            "access_token": "t",
            "token_type": "Bearer",
        }

    def test_from_dict_go_zero_expiry(self) -> None:
        """The Go zero time is read as no expiry."""
        token = Token.from_dict(
            {"access_token": "t", "token_type": "Bearer", "expiry": "0001-01-01T00:00:00Z"}
        )
        assert token.expiry is None
        assert token.refresh_token == ""

    def test_from_dict_offset_expiry(self) -> None:
        """Expiry with a UTC offset is normalised to UTC."""
        token = Token.from_dict(
            {"access_token": "t", "expiry": "2025-01-01T14:00:00+02:00"}
        )
        assert token.expiry == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestResolveCachePath:
    """Tests for resolve_cache_path."""

    def test_explicit_secrets_path(self, tmp_path: Path) -> None:
        """A secrets path is joined with the token file name."""
        path = token_store.resolve_cache_path(str(tmp_path / "x"))
        assert path == tmp_path / "x" / TOKEN_FILE_NAME
        assert not (tmp_path / "x").exists()

    def test_file_name(self) -> None:
        """The file name is query-escaped and stable."""
        assert TOKEN_FILE_NAME == "youtube-secret.json"

    def test_default_directory_created(self, isolated_env: Path) -> None:
        """An empty secrets path creates ~/.credentials with owner-only access."""
        path = token_store.resolve_cache_path("")
        credentials_dir = isolated_env / ".credentials"
        assert path == credentials_dir / TOKEN_FILE_NAME
        assert credentials_dir.is_dir()
        assert credentials_dir.stat().st_mode & 0o777 == stat.S_IRWXU

    def test_default_directory_idempotent(self, isolated_env: Path) -> None:
        """Repeated calls succeed and return the same path."""
        first = token_store.resolve_cache_path(None)
        second = token_store.resolve_cache_path("")
        assert first == second

    def test_home_unavailable(self) -> None:
        """PathResolutionError when the home directory cannot be determined."""
        with mock.patch.object(Path, "home", side_effect=RuntimeError("no home")):
            with pytest.raises(PathResolutionError) as exc_info:
                token_store.resolve_cache_path("")
        assert "no home" in str(exc_info.value)


class TestLoad:
    """Tests for reading the cache file."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """NotFoundError when the cache file does not exist."""
        with pytest.raises(NotFoundError):
            token_store.load(tmp_path / "missing.json")

    def test_directory_instead_of_file(self, tmp_path: Path) -> None:
        """NotFoundError when the path cannot be opened as a file."""
        with pytest.raises(NotFoundError):
            token_store.load(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        """DecodeError when the file is not JSON."""
        path = tmp_path / "token.json"
        path.write_text("not valid json")
        with pytest.raises(DecodeError):
            token_store.load(path)

    def test_missing_access_token(self, tmp_path: Path) -> None:
        """DecodeError when the JSON lacks an access token."""
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"token_type": "Bearer"}))
        with pytest.raises(DecodeError) as exc_info:
            token_store.load(path)
        assert "access_token" in str(exc_info.value)

    def test_not_an_object(self, tmp_path: Path) -> None:
        """DecodeError when the JSON is not an object."""
        path = tmp_path / "token.json"
        path.write_text("[]")
        with pytest.raises(DecodeError):
            token_store.load(path)

    def test_bad_expiry(self, tmp_path: Path) -> None:
        """DecodeError when the expiry is not a timestamp."""
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"access_token": "t", "expiry": "tomorrow"}))
        with pytest.raises(DecodeError):
            token_store.load(path)

    def test_reads_go_written_cache(self, tmp_path: Path) -> None:
        """A cache written by the Go tool loads."""
        path = tmp_path / "token.json"
        path.write_text(
            '{"access_token":"ya29.abc","token_type":"Bearer",'
            '"refresh_token":"1//xyz","expiry":"2030-06-01T10:00:00.500000123Z"}\n'
        )
        token = token_store.load(path)
        assert token.access_token == "ya29.abc"
        assert token.refresh_token == "1//xyz"
        assert token.expiry == datetime(2030, 6, 1, 10, 0, 0, 500000, tzinfo=timezone.utc)


class TestSave:
    """Tests for writing the cache file."""

    def test_save_then_load(self, tmp_path: Path, valid_token: Token) -> None:
        """A saved token loads back equal in every field."""
        path = tmp_path / "token.json"
        token_store.save(path, valid_token)
        assert token_store.load(path) == valid_token

    def test_permissions(self, tmp_path: Path, valid_token: Token) -> None:
        """The cache file is readable and writable only by the owner."""
        path = tmp_path / "token.json"
        token_store.save(path, valid_token)
        assert path.stat().st_mode & 0o777 == stat.S_IRUSR | stat.S_IWUSR

    def test_overwrites_existing(self, tmp_path: Path, valid_token: Token) -> None:
        """An existing cache is replaced and its permissions tightened."""
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"access_token": "old"}))
        path.chmod(0o644)

        token_store.save(path, valid_token)

        assert token_store.load(path).access_token == "abc"
        assert path.stat().st_mode & 0o777 == stat.S_IRUSR | stat.S_IWUSR
        assert not (tmp_path / "token.json.tmp").exists()

    def test_missing_directory(self, tmp_path: Path, valid_token: Token) -> None:
        """WriteError when the target directory does not exist."""
        path = tmp_path / "nope" / "token.json"
        with pytest.raises(WriteError) as exc_info:
            token_store.save(path, valid_token)
        assert exc_info.value.path == str(path)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_replace_failure_cleans_up(self, tmp_path: Path, valid_token: Token) -> None:
        """A failed rename leaves no temp file behind."""
        path = tmp_path / "token.json"
        with mock.patch("os.replace", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(WriteError):
                token_store.save(path, valid_token)
        assert not (tmp_path / "token.json.tmp").exists()
        assert not path.exists()
