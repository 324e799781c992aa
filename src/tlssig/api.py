"""Public operations: issue and verify UserSig / PrivateMapKey tokens.

None of these raise for protocol failures. Each returns a result whose
`code` is 0 on success or an ErrorCode otherwise, with a readable `message`.
"""

from __future__ import annotations

import time
from typing import Callable

from cryptography.exceptions import UnsupportedAlgorithm

from tlssig import runtime
from tlssig.config import (
    DEFAULT_EXPIRE_SECONDS,
    I32_MAX,
    I32_MIN,
    MAX_USER_ID_BYTES,
    U32_MAX,
    USER_ID_PATTERN,
    get_compression_level,
)
from tlssig.envelope import TokenDocument, encode_document
from tlssig.errors import ErrorCode, TokenError
from tlssig.log import get_logger
from tlssig.message import build_message
from tlssig.models import IssueResult, VerifyResult
from tlssig.signer import Ed25519Signer, HmacSha256Signer, Signer, Verifier
from tlssig.userbuf import PermissionRecord, build_user_buf, encode_user_buf
from tlssig.verify import verify_token

__all__ = [
    "build_user_buf",
    "issue_private_map_key",
    "issue_private_map_key_string_room",
    "issue_signature",
    "issue_user_sig",
    "verify_private_map_key",
    "verify_user_sig",
]

logger = get_logger(__name__)


def _invalid(message: str) -> TokenError:
    return TokenError(ErrorCode.INVALID_ARGUMENT, message)


def _check_u32(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise _invalid(f"{name} must be an unsigned 32-bit integer")


def _check_identity(app_id: int, user_id: str) -> None:
    _check_u32("app_id", app_id)
    if not isinstance(user_id, str) or not USER_ID_PATTERN.fullmatch(user_id):
        raise _invalid("user_id may only contain letters, digits, underscores and hyphens")
    if len(user_id.encode("utf-8")) > MAX_USER_ID_BYTES:
        raise _invalid(f"user_id is longer than {MAX_USER_ID_BYTES} bytes")


def _check_expire(expire_seconds: int) -> None:
    if (
        isinstance(expire_seconds, bool)
        or not isinstance(expire_seconds, int)
        or not I32_MIN <= expire_seconds <= I32_MAX
    ):
        raise _invalid("expire_seconds must be a signed 32-bit integer")


def _hmac_signer(key: bytes | str | None) -> HmacSha256Signer:
    if not key:
        raise _invalid("secret key is required")
    return HmacSha256Signer(key)


def _now(now: int | None) -> int:
    issued_at = int(time.time()) if now is None else now
    _check_u32("now", issued_at)
    return issued_at


def _sign(signer: Signer, message: bytes) -> bytes:
    try:
        return signer.sign(message)
    except Exception as exc:
        raise TokenError(ErrorCode.SIGN_FAILED, f"signing failed: {exc}") from exc


def _issue(
    app_id: int,
    user_id: str,
    signer: Signer,
    expire_seconds: int,
    user_buf: bytes | None,
    issued_at: int,
) -> str:
    message = build_message(app_id, user_id, expire_seconds, issued_at, user_buf)
    document = TokenDocument(
        app_id=app_id,
        user_id=user_id,
        expire_seconds=expire_seconds,
        issued_at=issued_at,
        signature=_sign(signer, message),
        user_buf=user_buf,
    )
    return encode_document(document, get_compression_level())


def _issue_result(build: Callable[[], str]) -> IssueResult:
    try:
        runtime.ensure_initialized()
        return IssueResult.success(build())
    except TokenError as exc:
        logger.debug("token issuance rejected", code=exc.code.name)
        return IssueResult.failure(exc)
    except Exception:
        logger.exception("token issuance failed")
        return IssueResult.failure(TokenError(ErrorCode.INTERNAL_ERROR))


def _verify_result(check: Callable[[], VerifyResult]) -> VerifyResult:
    try:
        runtime.ensure_initialized()
        return check()
    except TokenError as exc:
        logger.debug("token verification rejected", code=exc.code.name)
        return VerifyResult.failure(exc)
    except Exception:
        logger.exception("token verification failed")
        return VerifyResult.failure(TokenError(ErrorCode.INTERNAL_ERROR))


def issue_user_sig(
    app_id: int,
    user_id: str,
    key: bytes | str,
    expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
    *,
    now: int | None = None,
) -> IssueResult:
    """Issue a UserSig authorising user_id under app_id for expire_seconds."""
    def build() -> str:
        _check_identity(app_id, user_id)
        _check_expire(expire_seconds)
        return _issue(app_id, user_id, _hmac_signer(key), expire_seconds, None, _now(now))

    return _issue_result(build)


def _issue_private_map_key(
    app_id: int,
    user_id: str,
    key: bytes | str,
    room: int | str,
    expire_seconds: int,
    privilege_map: int,
    now: int | None,
) -> IssueResult:
    def build() -> str:
        _check_identity(app_id, user_id)
        _check_expire(expire_seconds)
        _check_u32("privilege_map", privilege_map)
        issued_at = _now(now)
        expire_at = issued_at + expire_seconds
        if not 0 <= expire_at <= U32_MAX:
            raise _invalid("expiry falls outside the unsigned 32-bit epoch range")
        record = PermissionRecord(
            account=user_id,
            app_id=app_id,
            room=room,
            expire_at=expire_at,
            privilege_map=privilege_map,
            account_type=0,
        )
        try:
            user_buf = encode_user_buf(record)
        except ValueError as exc:
            raise _invalid(str(exc)) from exc
        return _issue(app_id, user_id, _hmac_signer(key), expire_seconds, user_buf, issued_at)

    return _issue_result(build)


def issue_private_map_key(
    app_id: int,
    user_id: str,
    key: bytes | str,
    room_id: int,
    expire_seconds: int,
    privilege_map: int,
    *,
    now: int | None = None,
) -> IssueResult:
    """Issue a PrivateMapKey for a numeric room.

    privilege_map is a combination of Privilege bits; 255 grants everything,
    42 grants enter-room plus audio/video receive.
    """
    if isinstance(room_id, str):
        return IssueResult.failure(_invalid("room_id must be an integer; use issue_private_map_key_string_room"))
    return _issue_private_map_key(app_id, user_id, key, room_id, expire_seconds, privilege_map, now)


def issue_private_map_key_string_room(
    app_id: int,
    user_id: str,
    key: bytes | str,
    room_id: str,
    expire_seconds: int,
    privilege_map: int,
    *,
    now: int | None = None,
) -> IssueResult:
    """Issue a PrivateMapKey for a string room id."""
    if not isinstance(room_id, str) or not room_id:
        return IssueResult.failure(_invalid("room_id must be a non-empty string"))
    return _issue_private_map_key(app_id, user_id, key, room_id, expire_seconds, privilege_map, now)


def issue_signature(
    app_id: int,
    user_id: str,
    key: bytes | str | None,
    user_buf: bytes | None,
    expire_seconds: int,
    *,
    signer: Signer | bytes | str | None = None,
    now: int | None = None,
) -> IssueResult:
    """Issue a token over a caller-built user buf.

    By default the token is signed with HMAC-SHA256 under `key`. Passing
    `signer` (a signer object or an Ed25519 private key in PEM form) signs
    with that primitive instead; a key that fails to load or a signer that
    raises is reported as SIGN_FAILED.
    """
    def build() -> str:
        _check_identity(app_id, user_id)
        _check_expire(expire_seconds)
        if user_buf is not None and not isinstance(user_buf, (bytes, bytearray)):
            raise _invalid("user_buf must be bytes")
        if signer is None:
            active: Signer = _hmac_signer(key)
        elif isinstance(signer, (bytes, str)):
            try:
                active = Ed25519Signer.from_pem(signer)
            except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
                raise TokenError(ErrorCode.SIGN_FAILED, f"private key could not be loaded: {exc}") from exc
        else:
            active = signer
        buf = bytes(user_buf) if user_buf is not None else None
        return _issue(app_id, user_id, active, expire_seconds, buf, _now(now))

    return _issue_result(build)


def _resolve_verifier(key: bytes | str | None, verifier: Verifier | None) -> Verifier:
    if verifier is not None:
        return verifier
    return _hmac_signer(key)


def verify_user_sig(
    token: str | bytes | None,
    app_id: int,
    user_id: str,
    key: bytes | str | None,
    *,
    verifier: Verifier | None = None,
    now: int | None = None,
) -> VerifyResult:
    """Verify any token issued for (app_id, user_id).

    `verifier` replaces the HMAC check, e.g. an Ed25519Verifier for tokens
    issued through issue_signature with a private key.
    """
    def check() -> VerifyResult:
        if token is None:
            raise TokenError(ErrorCode.EMPTY_TOKEN)
        _check_u32("app_id", app_id)
        claims = verify_token(token, app_id, user_id, _resolve_verifier(key, verifier), now=now)
        return VerifyResult.success(claims)

    return _verify_result(check)


def verify_private_map_key(
    token: str | bytes | None,
    app_id: int,
    user_id: str,
    key: bytes | str | None,
    *,
    account_type: int | None = None,
    verifier: Verifier | None = None,
    now: int | None = None,
) -> VerifyResult:
    """Verify a PrivateMapKey and return its decoded permission record."""
    def check() -> VerifyResult:
        if token is None:
            raise TokenError(ErrorCode.EMPTY_TOKEN)
        _check_u32("app_id", app_id)
        claims = verify_token(
            token,
            app_id,
            user_id,
            _resolve_verifier(key, verifier),
            account_type=account_type,
            require_user_buf=True,
            now=now,
        )
        return VerifyResult.success(claims)

    return _verify_result(check)
