"""Utility for verifying that the broker's environment configuration is intact.

The tool performs three checks:

1. It loads ``AppSettings`` from the provided ``.env`` file, surfacing
   missing Strava credentials, a missing Redis URL or an ``APP_SECRET`` that
   is not hex or shorter than 32 bytes before the server refuses to start.
2. It can record and verify a checksum for the ``.env`` file so unexpected
   edits are detected.
3. With ``--ping-redis`` it confirms the configured Redis is reachable.

Example usages::

    python -m scripts.check_env record --env-file /opt/broker/.env \
        --hash-file /opt/broker/.env.sha256

    python -m scripts.check_env verify --env-file /opt/broker/.env \
        --hash-file /opt/broker/.env.sha256

    python -m scripts.check_env check --ping-redis
"""

from __future__ import annotations

import argparse
import asyncio
import hashlib
import sys
from pathlib import Path
from typing import Callable

from app.clients.redis_store import RedisStore
from app.core.config import AppSettings, _load_env_file, load_settings
from app.core.errors import ConfigurationError, StorageError

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_REDIS_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    """Return the SHA256 checksum for the target environment file."""
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _validate_settings(env_file: Path) -> AppSettings:
    """Ensure required settings can be loaded from the supplied env file."""
    _load_env_file(str(env_file), override=True)
    return load_settings()


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Investigate recent changes before restarting the broker.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


async def _ping_redis(settings: AppSettings) -> None:
    store = RedisStore(settings.redis.url, socket_timeout=settings.redis.socket_timeout)
    try:
        await store.ping()
    finally:
        await store.close()


def _check_redis(settings: AppSettings) -> int:
    try:
        asyncio.run(_ping_redis(settings))
    except StorageError as exc:
        print(f"Redis is not reachable: {exc}", file=sys.stderr)
        return EXIT_REDIS_ERROR
    print("Redis connection OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate broker settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common_arguments(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        add_common_arguments(sub)
        sub.add_argument(
            "--hash-file",
            required=True,
            type=Path,
            help="Location of the checksum baseline.",
        )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate settings without touching any checksum files.",
    )
    add_common_arguments(check_parser)
    check_parser.add_argument(
        "--ping-redis",
        action="store_true",
        help="Also open a connection to the configured Redis.",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _validate_settings(env_file)
    except ConfigurationError as exc:
        print(f"Settings validation failed:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: _check_redis(settings) if args.ping_redis else EXIT_OK,
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
