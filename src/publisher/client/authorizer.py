"""Interactive three-legged OAuth2 authorization.

The authorization code reaches us in one of two ways:

- ``PromptCodeSource`` prints the authorization URL and reads the code the
  user pastes into the terminal. Works with installed-application clients
  and the out-of-band redirect; no network listener is started.
- ``LocalCallbackCodeSource`` starts an HTTP listener on localhost, opens
  the browser and waits for the provider to redirect back with ``?code=``.
  Needs a web-application client registered with the matching redirect URI.

``InteractiveAuthorizer`` drives a ``google_auth_oauthlib`` Flow through
URL construction, code retrieval and the code-for-token exchange.
"""

from __future__ import annotations

import concurrent.futures
import http.server
import secrets
import subprocess
import sys
import threading
import urllib.parse
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, TextIO

import requests
from google_auth_oauthlib.flow import Flow
from loguru import logger
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from publisher.client.config import (
    CALLBACK_HOST,
    CALLBACK_PORT,
    OOB_REDIRECT_URI,
    AuthStrategy,
    OAuthClientConfig,
    with_redirect_uri,
)
from publisher.client.exceptions import (
    BrowserLaunchError,
    CallbackError,
    CallbackTimeoutError,
    ExchangeError,
    InputError,
    ListenError,
)
from publisher.client.token_store import Token


class CodeSource(Protocol):
    """Obtains an authorization code from the user for a given URL."""

    @property
    def redirect_uri(self) -> str: ...

    def obtain_code(self, auth_url: str) -> str: ...


class PromptCodeSource:
    """Reads the authorization code from the terminal.

    Args:
        stdin: Stream to read the code from. Defaults to ``sys.stdin``.
        stdout: Stream for the URL and prompt. Defaults to ``sys.stdout``.
    """

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self._stdin = stdin
        self._stdout = stdout

    @property
    def redirect_uri(self) -> str:
        return OOB_REDIRECT_URI

    def obtain_code(self, auth_url: str) -> str:
        stdin = self._stdin or sys.stdin
        stdout = self._stdout or sys.stdout

        print(
            "Go to the following link in your browser. After completing "
            "the authorization flow, enter the authorization code on the "
            "command line:",
            file=stdout,
        )
        print(auth_url, file=stdout)
        print("Enter the code here: ", end="", file=stdout, flush=True)

        try:
            line = stdin.readline()
        except (OSError, ValueError) as e:
            raise InputError(f"Unable to read authorization code: {e}") from e

        code = line.strip()
        if not code:
            raise InputError("Unable to read authorization code: no input")
        return code


def open_url(url: str) -> None:
    """Open ``url`` in the user's default browser.

    Raises:
        BrowserLaunchError: If the platform is unsupported or the command fails.
    """
    if sys.platform.startswith("linux"):
        command = ["xdg-open", url]
    elif sys.platform == "darwin":
        command = ["open", url]
    elif sys.platform == "win32":
        command = ["rundll32", "url.dll,FileProtocolHandler", url]
    else:
        raise BrowserLaunchError(f"Cannot open URL {url} on platform {sys.platform}")

    try:
        subprocess.Popen(  # noqa: S603
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise BrowserLaunchError(
            f"Unable to open authorization URL with {command[0]}: {e}"
        ) from e


class LocalCallbackCodeSource:
    """Receives the authorization code on a local HTTP listener.

    Args:
        host: Interface to listen on.
        port: Port to listen on. Must match the client's registered redirect URI.
        timeout: Seconds to wait for the callback. None waits indefinitely.
        open_browser: Callable that opens the authorization URL.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        timeout: float | None = None,
        open_browser: Callable[[str], None] = open_url,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._open_browser = open_browser

    @property
    def redirect_uri(self) -> str:
        return f"http://{self._host}:{self._port}"

    def obtain_code(self, auth_url: str) -> str:
        """Open the browser and block until the provider redirects back.

        The listener is shut down before returning, whatever the outcome.

        Raises:
            ListenError: If the port cannot be bound. The browser is not opened.
            BrowserLaunchError: If the browser cannot be opened.
            CallbackError: If the callback carries an error or a wrong state.
            CallbackTimeoutError: If ``timeout`` elapses first.
        """
        result: concurrent.futures.Future[str] = concurrent.futures.Future()
        handler_class = _create_handler_class(result, _state_from_url(auth_url))

        try:
            server = http.server.HTTPServer((self._host, self._port), handler_class)
        except OSError as e:
            logger.error("Unable to start a web server on {}:{}", self._host, self._port)
            raise ListenError(self._host, self._port, e.strerror or str(e)) from e

        server_thread = threading.Thread(
            target=server.serve_forever, name="oauth-callback", daemon=True
        )
        server_thread.start()
        logger.debug("Listening for OAuth callback on {}", self.redirect_uri)

        try:
            self._open_browser(auth_url)
            print(
                "Your browser has been opened to an authorization URL. "
                "This program will resume once authorization has been provided."
            )
            print(auth_url)

            try:
                return result.result(timeout=self._timeout)
            except concurrent.futures.TimeoutError as e:
                raise CallbackTimeoutError(self._timeout or 0.0) from e
        finally:
            server.shutdown()
            server.server_close()
            server_thread.join()
            logger.debug("OAuth callback listener closed")


def _state_from_url(auth_url: str) -> str | None:
    params = urllib.parse.parse_qs(urllib.parse.urlparse(auth_url).query)
    values = params.get("state")
    return values[0] if values else None


def _create_handler_class(
    result: concurrent.futures.Future[str], expected_state: str | None
) -> type[http.server.BaseHTTPRequestHandler]:
    """Create HTTP handler class for the OAuth callback."""

    class CallbackHandler(http.server.BaseHTTPRequestHandler):
        """HTTP handler that hands the first authorization code to the waiting flow."""

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("OAuth callback: {}", format % args)

        def do_GET(self) -> None:
            params = urllib.parse.parse_qs(urllib.parse.urlparse(self.path).query)

            if result.done():
                self._send_text("Already processed.", 400)
                return

            if "error" in params:
                error = params["error"][0]
                result.set_exception(CallbackError(f"Authorization failed: {error}"))
                self._send_text(
                    f"Authorization failed: {error}\r\n"
                    "Please close this window and try again.",
                    400,
                )
                return

            code = params.get("code", [""])[0]
            if not code:
                # Browsers also ask for /favicon.ico; keep waiting.
                self._send_text("Missing authorization code in callback.", 400)
                return

            if expected_state is not None and params.get("state", [None])[0] != expected_state:
                result.set_exception(CallbackError("OAuth state mismatch in callback"))
                self._send_text("Authorization state mismatch.", 400)
                return

            result.set_result(code)
            self._send_text(
                f"Received code: {code}\r\n"
                "You can now safely close this browser window."
            )

        def _send_text(self, content: str, status: int = 200) -> None:
            body = content.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    return CallbackHandler


def create_code_source(
    strategy: AuthStrategy,
    *,
    port: int = CALLBACK_PORT,
    timeout: float | None = None,
) -> CodeSource:
    """Return the code source for an authorization strategy."""
    if strategy is AuthStrategy.LOCAL_CALLBACK:
        return LocalCallbackCodeSource(port=port, timeout=timeout)
    return PromptCodeSource()


class InteractiveAuthorizer:
    """Runs the authorization-code flow for one OAuth client.

    The redirect URI of ``client_config`` is replaced by the one the code
    source listens on. The same underlying Flow is used for the URL and the
    exchange, so PKCE verifiers generated for the URL are honoured.

    Args:
        client_config: OAuth client registration and scopes.
        code_source: Where the authorization code comes from.
    """

    def __init__(self, client_config: OAuthClientConfig, code_source: CodeSource) -> None:
        self._client_config = with_redirect_uri(client_config, code_source.redirect_uri)
        self._code_source = code_source
        self._flow: Flow | None = None

    @property
    def client_config(self) -> OAuthClientConfig:
        return self._client_config

    def _get_flow(self) -> Flow:
        if self._flow is None:
            self._flow = Flow.from_client_config(
                self._client_config.to_client_config(),
                scopes=list(self._client_config.scopes),
                redirect_uri=self._client_config.redirect_uri,
            )
        return self._flow

    def build_authorization_url(self, state: str) -> str:
        """Build the provider URL requesting offline access for the configured scopes."""
        url, _ = self._get_flow().authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )
        return url

    def obtain_code(self, auth_url: str) -> str:
        """Get the authorization code from the user via the code source."""
        return self._code_source.obtain_code(auth_url)

    def exchange_code_for_token(self, code: str) -> Token:
        """Exchange an authorization code for a token at the provider's token endpoint.

        Raises:
            ExchangeError: If the provider rejects the code or cannot be reached.
        """
        flow = self._get_flow()
        try:
            result = flow.fetch_token(code=code)
        except (OAuth2Error, requests.exceptions.RequestException, ValueError, Warning) as e:
            raise ExchangeError(f"Unable to retrieve token: {e}") from e

        access_token = result.get("access_token")
        if not access_token:
            raise ExchangeError("Unable to retrieve token: response has no access_token")

        expires_at = result.get("expires_at")
        expiry = (
            datetime.fromtimestamp(float(expires_at), tz=timezone.utc)
            if expires_at is not None
            else None
        )
        return Token(
            access_token=access_token,
            refresh_token=result.get("refresh_token") or "",
            token_type=result.get("token_type") or "Bearer",
            expiry=expiry,
        )

    def authorize(self, state: str | None = None) -> Token:
        """Run the full flow: build URL, obtain code, exchange it."""
        auth_url = self.build_authorization_url(state or secrets.token_urlsafe(16))
        code = self.obtain_code(auth_url)
        logger.info("Exchanging authorization code for token")
        return self.exchange_code_for_token(code)
