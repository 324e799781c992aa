"""Verification pipeline.

    Decoded -> MacVerified -> FieldsCrossChecked -> ExpiryChecked -> Valid

Every step either advances or raises TokenError (the Rejected state) with the
code of the check that failed. Nothing later in the chain runs after a
rejection.
"""

from __future__ import annotations

import enum
import time

from tlssig.envelope import TokenDocument, decode_document
from tlssig.errors import ErrorCode, TokenError
from tlssig.log import get_logger
from tlssig.message import build_message
from tlssig.models import Claims
from tlssig.signer import Verifier
from tlssig.userbuf import PermissionRecord, decode_user_buf

logger = get_logger(__name__)


class State(enum.Enum):
    DECODED = "decoded"
    MAC_VERIFIED = "mac_verified"
    FIELDS_CROSS_CHECKED = "fields_cross_checked"
    EXPIRY_CHECKED = "expiry_checked"
    VALID = "valid"


def _advance(state: State, app_id: int) -> None:
    logger.debug("token verification step", state=state.value, app_id=app_id)


def _check_signature(document: TokenDocument, verifier: Verifier) -> None:
    message = build_message(
        document.app_id,
        document.user_id,
        document.expire_seconds,
        document.issued_at,
        document.user_buf,
    )
    if not verifier.verify(message, document.signature):
        raise TokenError(ErrorCode.VERIFY_FAILED)


def _cross_check(
    document: TokenDocument,
    app_id: int,
    user_id: str,
    account_type: int | None,
) -> PermissionRecord | None:
    if document.app_id != app_id:
        raise TokenError(
            ErrorCode.APP_ID_MISMATCH,
            f"sdkappid in token ({document.app_id}) does not match {app_id}",
        )

    record = decode_user_buf(document.user_buf) if document.user_buf is not None else None

    if record is not None and account_type is not None and record.account_type != account_type:
        raise TokenError(
            ErrorCode.ACCTYPE_MISMATCH,
            f"account type in token ({record.account_type}) does not match {account_type}",
        )

    if document.user_id != user_id or (record is not None and record.account != user_id):
        raise TokenError(ErrorCode.IDENTIFIER_MISMATCH)

    if record is not None and record.app_id != app_id:
        raise TokenError(
            ErrorCode.APPID_AT_3RD_MISMATCH,
            f"app id in user buf ({record.app_id}) does not match {app_id}",
        )
    return record


def _check_expiry(document: TokenDocument, record: PermissionRecord | None, now: int) -> None:
    if now >= document.expires_at:
        raise TokenError(ErrorCode.EXPIRED, f"token expired at {document.expires_at}")
    if record is not None and now >= record.expire_at:
        raise TokenError(ErrorCode.EXPIRED, f"permission expired at {record.expire_at}")


def verify_token(
    token: str | bytes,
    app_id: int,
    user_id: str,
    verifier: Verifier,
    *,
    account_type: int | None = None,
    require_user_buf: bool = False,
    now: int | None = None,
) -> Claims:
    """Run the full pipeline and return the verified claims.

    Raises TokenError on the first failing step.
    """
    document = decode_document(token)
    _advance(State.DECODED, app_id)

    _check_signature(document, verifier)
    _advance(State.MAC_VERIFIED, app_id)

    if require_user_buf and document.user_buf is None:
        raise TokenError(ErrorCode.FIELD_MISSING, "token carries no user buf")
    record = _cross_check(document, app_id, user_id, account_type)
    _advance(State.FIELDS_CROSS_CHECKED, app_id)

    _check_expiry(document, record, int(time.time()) if now is None else now)
    _advance(State.EXPIRY_CHECKED, app_id)

    _advance(State.VALID, app_id)
    return Claims(
        app_id=document.app_id,
        user_id=document.user_id,
        issued_at=document.issued_at,
        expire_seconds=document.expire_seconds,
        version=document.version,
        permission=record,
    )
