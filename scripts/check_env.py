"""Check a bridge ``.env`` file before the service is started with it.

The bridge refuses to start when a required variable is missing, so this tool
loads the same ``AppSettings`` offline and reports problems per variable:

1. Every required key (GitHub credentials, ``REDIRECT_URL``, ``REDIS_URL``,
   ``LOOKUP_SECRET``, ``BIND_ADDRESS``) must be present and well formed.
2. ``REDIRECT_URL`` should point at the callback route this app serves;
   otherwise GitHub sends users to a page that does not exist.
3. With ``--ping-redis`` the configured Redis must answer ``PING``.

Example usages::

    python -m scripts.check_env --env-file /opt/token-bridge/.env
    python -m scripts.check_env --env-file /opt/token-bridge/.env --ping-redis
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from urllib.parse import urlparse

from pydantic import ValidationError

from token_bridge.api.routes import API_PREFIX, CALLBACK_PATH
from token_bridge.clients import RedisTokenStore
from token_bridge.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_REDIS_UNREACHABLE = 4
EXIT_RUNTIME_ERROR = 5


def _load_settings(env_file: Path) -> AppSettings:
    """Build settings the way the service does, reading ``env_file`` first."""
    _load_env_file(str(env_file))
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]


def _describe_errors(exc: ValidationError) -> list[str]:
    """One line per offending variable, named the way it appears in ``.env``."""
    lines = []
    for error in exc.errors():
        key = ".".join(str(part) for part in error["loc"]) or "settings"
        lines.append(f"  {key}: {error['msg']}")
    return lines


def _redirect_warnings(settings: AppSettings) -> list[str]:
    expected = f"{API_PREFIX}{CALLBACK_PATH}"
    path = urlparse(str(settings.github.redirect_uri)).path.rstrip("/")
    if path != expected:
        return [
            f"REDIRECT_URL path is {path or '/'!r} but the bridge serves the "
            f"GitHub callback at {expected!r}."
        ]
    return []


async def _ping_redis(settings: AppSettings) -> bool:
    store = RedisTokenStore.from_url(settings.redis.url)
    try:
        return await store.ping()
    finally:
        await store.close()


def _summary(settings: AppSettings) -> str:
    encryption = "on" if settings.security.token_encryption_secret else "off"
    webhook = "token required" if settings.telegram.webhook_token else "open"
    return (
        f"Settings OK. Listening on {settings.bind_host}:{settings.bind_port}, "
        f"record encryption {encryption}, Telegram webhook {webhook}."
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the token bridge configuration before starting it."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    parser.add_argument(
        "--ping-redis",
        action="store_true",
        help="Also check that REDIS_URL answers PING.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it from .env.example.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed; the bridge would refuse to start:",
            *_describe_errors(exc),
            sep="\n",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    for warning in _redirect_warnings(settings):
        print(f"Warning: {warning}", file=sys.stderr)

    if args.ping_redis and not asyncio.run(_ping_redis(settings)):
        print("Redis at REDIS_URL did not answer PING.", file=sys.stderr)
        return EXIT_REDIS_UNREACHABLE

    print(_summary(settings))
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
