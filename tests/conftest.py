"""Shared test fixtures for tlssig tests."""

from __future__ import annotations

import base64
import json
import zlib
from typing import Any, Generator

import pytest

from tlssig import runtime
from tlssig.envelope import b64url_encode
from tlssig.message import build_message
from tlssig.signer import sign

APP_ID = 1400000000
USER_ID = "alice_01"
NOW = 1_700_000_000


def make_token(doc: Any, level: int = 9) -> str:
    """Wrap an arbitrary JSON value in the wire pipeline, bypassing validation."""
    body = json.dumps(doc, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return b64url_encode(zlib.compress(body, level))


def signed_doc(
    key: bytes,
    app_id: int = APP_ID,
    user_id: str = USER_ID,
    expire: int = 3600,
    issued_at: int = NOW,
    user_buf: bytes | None = None,
) -> dict[str, Any]:
    """Build a correctly signed token document as a plain dict."""
    mac = sign(build_message(app_id, user_id, expire, issued_at, user_buf), key)
    doc: dict[str, Any] = {
        "TLS.ver": "2.0",
        "TLS.identifier": user_id,
        "TLS.sdkappid": app_id,
        "TLS.expire": expire,
        "TLS.time": issued_at,
        "TLS.sig": base64.b64encode(mac).decode("ascii"),
    }
    if user_buf is not None:
        doc["TLS.userbuf"] = base64.b64encode(user_buf).decode("ascii")
    return doc


@pytest.fixture
def secret_key() -> bytes:
    return b"test-secret-do-not-use-in-production"


@pytest.fixture
def fresh_runtime() -> Generator[None, None, None]:
    """Start each runtime test from the shut-down state."""
    runtime.shutdown()
    yield
    runtime.shutdown()
