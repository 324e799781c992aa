"""Token envelope: JSON document -> zlib -> URL-safe base64, and back.

Each decode stage reports its own error code so callers can tell a
truncated copy-paste from a corrupted payload from a wrong key.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import zlib
from dataclasses import dataclass
from typing import Any

from tlssig.config import I32_MAX, I32_MIN, MAX_DOCUMENT_BYTES, TOKEN_VERSION, U32_MAX
from tlssig.errors import ErrorCode, TokenError

KEY_VERSION = "TLS.ver"
KEY_IDENTIFIER = "TLS.identifier"
KEY_APP_ID = "TLS.sdkappid"
KEY_EXPIRE = "TLS.expire"
KEY_TIME = "TLS.time"
KEY_SIG = "TLS.sig"
KEY_USER_BUF = "TLS.userbuf"

REQUIRED_KEYS = (KEY_SIG, KEY_APP_ID, KEY_IDENTIFIER, KEY_EXPIRE, KEY_TIME)

_URLSAFE_RE = re.compile(r"[A-Za-z0-9_-]+={0,2}")
COMPRESSION_LEVELS = range(1, 10)


@dataclass(frozen=True)
class TokenDocument:
    app_id: int
    user_id: str
    expire_seconds: int
    issued_at: int
    signature: bytes
    user_buf: bytes | None = None
    version: str = TOKEN_VERSION

    @property
    def expires_at(self) -> int:
        return self.issued_at + self.expire_seconds

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            KEY_VERSION: self.version,
            KEY_IDENTIFIER: self.user_id,
            KEY_APP_ID: self.app_id,
            KEY_EXPIRE: self.expire_seconds,
            KEY_TIME: self.issued_at,
            KEY_SIG: base64.b64encode(self.signature).decode("ascii"),
        }
        if self.user_buf is not None:
            doc[KEY_USER_BUF] = base64.b64encode(self.user_buf).decode("ascii")
        return doc


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 (+ -> -, / -> _) with padding stripped."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """Strict inverse of b64url_encode. Padding is optional.

    Rejects characters outside the URL-safe alphabet and non-canonical
    trailing bits, so every distinct string maps to distinct bytes.
    """
    if not _URLSAFE_RE.fullmatch(text):
        raise ValueError("characters outside the URL-safe base64 alphabet")
    stripped = text.rstrip("=")
    raw = base64.urlsafe_b64decode(stripped + "=" * (-len(stripped) % 4))
    if b64url_encode(raw) != stripped:
        raise ValueError("non-canonical base64")
    return raw


def encode_document(document: TokenDocument, level: int = 9) -> str:
    body = json.dumps(document.to_dict(), separators=(",", ":"), sort_keys=True)
    return b64url_encode(zlib.compress(body.encode("utf-8"), level))


def _inflate(compressed: bytes, max_bytes: int) -> bytes:
    d = zlib.decompressobj()
    out = d.decompress(compressed, max_bytes)
    if d.unconsumed_tail:
        raise ValueError(f"document larger than {max_bytes} bytes")
    if not d.eof:
        raise ValueError("truncated stream")
    if d.unused_data:
        raise ValueError("trailing data after stream")
    return out


def _check_canonical(compressed: bytes, body: bytes) -> None:
    """Require the stream to be exactly what zlib.compress emits for body.

    inflate tolerates ignored padding bits and redundant block headers, so
    different streams can decode to the same document. Only the bytes
    produced by one of the issuing levels are accepted.
    """
    for level in COMPRESSION_LEVELS:
        if zlib.compress(body, level) == compressed:
            return
    raise ValueError("stream is not in canonical zlib form")


def _decode_b64_field(doc: dict[str, Any], key: str) -> bytes | None:
    value = doc.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TokenError(ErrorCode.FIELD_TYPE_INVALID, f"{key} must be a string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TokenError(ErrorCode.USER_BUF_BASE64_FAIL, f"{key} is not valid base64") from exc


def _int_field(doc: dict[str, Any], key: str, low: int, high: int) -> int:
    value = doc[key]
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise TokenError(ErrorCode.FIELD_TYPE_INVALID, f"{key} must be an integer in [{low}, {high}]")
    return value


def decode_document(token: str | bytes, max_bytes: int = MAX_DOCUMENT_BYTES) -> TokenDocument:
    """Decode a wire token into a TokenDocument.

    Raises TokenError with the code of the first stage that fails. The
    signature is NOT checked here.
    """
    if not token:
        raise TokenError(ErrorCode.EMPTY_TOKEN)
    if isinstance(token, (bytes, bytearray)):
        try:
            token = bytes(token).decode("ascii")
        except UnicodeDecodeError as exc:
            raise TokenError(ErrorCode.BASE64_DECODE_FAIL, "token is not ASCII") from exc
    if not isinstance(token, str):
        raise TokenError(ErrorCode.BASE64_DECODE_FAIL, f"token must be text, got {type(token).__name__}")

    try:
        compressed = b64url_decode(token)
    except (binascii.Error, ValueError) as exc:
        raise TokenError(ErrorCode.BASE64_DECODE_FAIL, f"token base64 decode failed: {exc}") from exc

    try:
        body = _inflate(compressed, max_bytes)
        _check_canonical(compressed, body)
    except (zlib.error, ValueError) as exc:
        raise TokenError(ErrorCode.DECOMPRESS_FAIL, f"token decompression failed: {exc}") from exc

    try:
        doc = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenError(ErrorCode.JSON_PARSE_FAIL) from exc
    if not isinstance(doc, dict):
        raise TokenError(ErrorCode.JSON_NOT_OBJECT)

    user_buf = _decode_b64_field(doc, KEY_USER_BUF)

    missing = [k for k in REQUIRED_KEYS if k not in doc]
    if missing:
        raise TokenError(ErrorCode.FIELD_MISSING, f"fields missing from token: {', '.join(missing)}")

    user_id = doc[KEY_IDENTIFIER]
    if not isinstance(user_id, str):
        raise TokenError(ErrorCode.FIELD_TYPE_INVALID, f"{KEY_IDENTIFIER} must be a string")
    version = doc.get(KEY_VERSION, TOKEN_VERSION)
    if not isinstance(version, str):
        raise TokenError(ErrorCode.FIELD_TYPE_INVALID, f"{KEY_VERSION} must be a string")

    app_id = _int_field(doc, KEY_APP_ID, 0, U32_MAX)
    expire_seconds = _int_field(doc, KEY_EXPIRE, I32_MIN, I32_MAX)
    issued_at = _int_field(doc, KEY_TIME, 0, U32_MAX)
    signature = _decode_b64_field(doc, KEY_SIG)
    if signature is None:
        raise TokenError(ErrorCode.FIELD_MISSING, f"fields missing from token: {KEY_SIG}")

    return TokenDocument(
        app_id=app_id,
        user_id=user_id,
        expire_seconds=expire_seconds,
        issued_at=issued_at,
        signature=signature,
        user_buf=user_buf,
        version=version,
    )
