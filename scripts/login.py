"""Command-line login against the token broker.

Opens the browser at ``/token/start`` with a fresh session id, then polls
``/token/poll`` until the browser login completes or 90 seconds pass, and
stores the bearer token in the user's config directory.

Example::

    python -m scripts.login --server https://broker.example.com
    python -m scripts.login status
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
import uuid
import webbrowser
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from pathlib import Path
from typing import Callable, Optional

import httpx

DEFAULT_SERVER_URL = "http://localhost:8080"
POLL_INTERVAL_SECONDS = 1.5
POLL_TIMEOUT_SECONDS = 90.0
REQUEST_TIMEOUT_SECONDS = 10.0

EXIT_OK = 0
EXIT_LOGIN_FAILED = 1


class LoginError(Exception):
    """Raised when the broker never delivers a token or answers unexpectedly."""


@dataclass
class StoredCredentials:
    token: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(self.expires_at.tzinfo)
        return current >= self.expires_at


def credentials_path() -> Path:
    """Location of the saved credentials, under the XDG config home."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "sktk" / "credentials.json"


def save_credentials(credentials: StoredCredentials, path: Optional[Path] = None) -> Path:
    target = path or credentials_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {"token": credentials.token, "expires_at": credentials.expires_at.isoformat()}
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    target.chmod(0o600)
    return target


def load_credentials(path: Optional[Path] = None) -> StoredCredentials:
    target = path or credentials_path()
    if not target.exists():
        raise LoginError("credentials not found, run the login command first")
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
        return StoredCredentials(
            token=data["token"], expires_at=datetime.fromisoformat(data["expires_at"])
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise LoginError(f"credentials file {target} is unreadable") from exc


def poll_for_token(
    client: httpx.Client,
    server_url: str,
    session_id: str,
    *,
    interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = POLL_TIMEOUT_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_wait: Optional[Callable[[int], None]] = None,
) -> StoredCredentials:
    """Poll until the staged token appears; never issues requests past ``timeout``."""
    poll_url = f"{server_url.rstrip('/')}/token/poll"
    deadline = clock() + timeout
    attempt = 0

    while clock() < deadline:
        try:
            response = client.get(poll_url, params={"session_id": session_id})
        except httpx.HTTPError:
            response = None

        if response is not None and response.status_code == HTTPStatus.OK:
            try:
                body = response.json()
                return StoredCredentials(
                    token=body["token"],
                    expires_at=datetime.fromisoformat(body["expires_at"].replace("Z", "+00:00")),
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise LoginError("failed to parse poll response") from exc
        if response is not None and response.status_code != HTTPStatus.ACCEPTED:
            raise LoginError(f"unexpected response status: {response.status_code}")

        if on_wait is not None:
            on_wait(attempt)
        attempt += 1
        sleep(interval)

    raise LoginError(f"authentication timeout after {int(timeout)} seconds")


def _print_waiting(attempt: int) -> None:
    dots = "." * (attempt % 3 + 1)
    print(f"\rWaiting{dots:<3}", end="", flush=True)


def run_login(server_url: str, *, open_browser: bool = True) -> StoredCredentials:
    session_id = str(uuid.uuid4())
    auth_url = f"{server_url.rstrip('/')}/token/start?session_id={session_id}"

    print("Opening browser for authentication...")
    print(f"If the browser doesn't open, visit: {auth_url}\n")
    if open_browser and not webbrowser.open(auth_url):
        print(f"Please manually open: {auth_url}\n")

    print("Waiting for authentication to complete...")
    with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        return poll_for_token(client, server_url, session_id, on_wait=_print_waiting)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log in to the Strava token broker.")
    parser.add_argument(
        "command",
        nargs="?",
        choices=("login", "status"),
        default="login",
        help="Run the browser login (default) or report on the saved token.",
    )
    parser.add_argument(
        "--server",
        default=os.environ.get("SKTK_SERVER_URL", DEFAULT_SERVER_URL),
        help="Base URL of the token broker.",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the login URL without opening a browser.",
    )
    return parser


def show_status(path: Optional[Path] = None) -> int:
    try:
        credentials = load_credentials(path)
    except LoginError as exc:
        print(f"Not logged in: {exc}", file=sys.stderr)
        return EXIT_LOGIN_FAILED

    if credentials.is_expired():
        print(f"Token expired at {credentials.expires_at:%a, %d %b %Y %H:%M:%S %Z}, log in again.")
        return EXIT_LOGIN_FAILED
    print(f"Logged in. Token expires: {credentials.expires_at:%a, %d %b %Y %H:%M:%S %Z}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "status":
        return show_status()

    try:
        credentials = run_login(args.server, open_browser=not args.no_browser)
    except LoginError as exc:
        print(f"\nAuthentication failed: {exc}", file=sys.stderr)
        return EXIT_LOGIN_FAILED

    path = save_credentials(credentials)
    print("\nAuthentication successful!")
    print(f"Token saved to: {path}")
    print(f"Token expires: {credentials.expires_at:%a, %d %b %Y %H:%M:%S %Z}")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
