"""Process-wide crypto runtime: one-time init and shutdown.

hashlib and zlib need no explicit setup, but the checks in init() fail fast on an
interpreter built without SHA-256 or zlib instead of failing mid-issuance.
Both calls are idempotent and safe from any thread.
"""

from __future__ import annotations

import hashlib
import hmac
import threading
import zlib

from tlssig.log import get_logger

logger = get_logger(__name__)

# RFC 4231 test case 2.
_HMAC_KEY = b"Jefe"
_HMAC_DATA = b"what do ya want for nothing?"
_HMAC_EXPECTED = bytes.fromhex("5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843")

_lock = threading.Lock()
_initialized = False


def init() -> None:
    """Initialise the runtime once. Raises RuntimeError if a primitive is missing."""
    global _initialized
    with _lock:
        if _initialized:
            return
        if "sha256" not in hashlib.algorithms_available:
            raise RuntimeError("hashlib has no sha256 implementation")
        if hmac.new(_HMAC_KEY, _HMAC_DATA, hashlib.sha256).digest() != _HMAC_EXPECTED:
            raise RuntimeError("HMAC-SHA256 known-answer check failed")
        if zlib.decompress(zlib.compress(_HMAC_DATA)) != _HMAC_DATA:
            raise RuntimeError("zlib round-trip check failed")
        _initialized = True
        logger.debug("crypto runtime initialised", zlib_version=zlib.ZLIB_RUNTIME_VERSION)


def shutdown() -> None:
    """Release the runtime. Calling it when not initialised is a no-op."""
    global _initialized
    with _lock:
        if not _initialized:
            return
        _initialized = False
        logger.debug("crypto runtime shut down")


def is_initialized() -> bool:
    return _initialized


def ensure_initialized() -> None:
    if not _initialized:
        init()
