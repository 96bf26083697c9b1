"""Shared test fixtures for publisher.client."""

from __future__ import annotations

import os
import socket
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from publisher.client.config import OOB_REDIRECT_URI, CredentialOptions, OAuthClientConfig
from publisher.client.token_store import Token

UPLOAD_SCOPE = "https://www.googleapis.com/auth/youtube.upload"


class FakeCodeSource:
    """Code source that records calls instead of talking to a user."""

    def __init__(self, code: str = "fake-code") -> None:
        self.code = code
        self.urls: list[str] = []

    @property
    def redirect_uri(self) -> str:
        return OOB_REDIRECT_URI

    def obtain_code(self, auth_url: str) -> str:
        self.urls.append(auth_url)
        return self.code


def find_free_port() -> int:
    """Find an available port on 127.0.0.1."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port: int = s.getsockname()[1]
        return port


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir and drop YOUTUBE_* settings from the environment."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("YOUTUBE_"):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def client_config() -> OAuthClientConfig:
    return OAuthClientConfig(
        client_id="test-client.apps.googleusercontent.com",
        client_secret="test-secret",
        scopes=(UPLOAD_SCOPE,),
    )


@pytest.fixture
def secrets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "secrets"
    path.mkdir()
    return path


@pytest.fixture
def options(client_config: OAuthClientConfig, secrets_dir: Path) -> CredentialOptions:
    return CredentialOptions(secrets_path=str(secrets_dir), client_config=client_config)


@pytest.fixture
def valid_token() -> Token:
    return Token(
        access_token="abc",
        refresh_token="refresh-abc",
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def fake_code_source() -> FakeCodeSource:
    return FakeCodeSource()
