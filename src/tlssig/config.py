"""Configuration: protocol constants, secret key, app id, compression, log level."""

from __future__ import annotations

import os
import re

TOKEN_VERSION = "2.0"
DEFAULT_EXPIRE_SECONDS = 86400 * 180  # 180 days
MAX_USER_ID_BYTES = 32
USER_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
MAX_DOCUMENT_BYTES = 64 * 1024  # cap on the decompressed JSON document
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

U32_MAX = 0xFFFFFFFF
I32_MIN = -(2**31)
I32_MAX = 2**31 - 1


def get_secret_key() -> bytes:
    """Return the signing key from env. Fail closed if missing."""
    secret = os.environ.get("TLSSIG_SECRET_KEY", "")
    if not secret:
        raise RuntimeError(
            "TLSSIG_SECRET_KEY environment variable is required. "
            "Copy the key shown for your application in the service console."
        )
    return secret.encode("utf-8")


def get_app_id() -> int:
    """Return the application id from TLSSIG_SDKAPPID.

    Fail closed if unset or not an unsigned 32-bit integer.
    """
    raw = os.environ.get("TLSSIG_SDKAPPID", "").strip()
    if not raw:
        raise RuntimeError("TLSSIG_SDKAPPID environment variable is required.")
    try:
        app_id = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"TLSSIG_SDKAPPID must be an integer, got {raw!r}") from exc
    if not 0 <= app_id <= U32_MAX:
        raise RuntimeError(f"TLSSIG_SDKAPPID out of range: {app_id}")
    return app_id


def get_compression_level() -> int:
    """zlib level used when issuing tokens (TLSSIG_COMPRESSION_LEVEL, default 9)."""
    raw = os.environ.get("TLSSIG_COMPRESSION_LEVEL", "").strip()
    if not raw:
        return 9
    try:
        level = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"TLSSIG_COMPRESSION_LEVEL must be an integer, got {raw!r}") from exc
    if not 1 <= level <= 9:
        raise RuntimeError(f"TLSSIG_COMPRESSION_LEVEL must be between 1 and 9, got {level}")
    return level


def check_log_level(value: str) -> str:
    level = value.strip().lower()
    if level not in LOG_LEVELS:
        raise RuntimeError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return level


def get_log_level() -> str:
    raw = os.environ.get("TLSSIG_LOG_LEVEL", "").strip()
    return check_log_level(raw) if raw else "info"
