"""Error taxonomy: stable numeric codes shared with the other language bindings."""

from __future__ import annotations

import enum


class ErrorCode(enum.IntEnum):
    """Status codes. Numbers are part of the protocol; only append."""

    OK = 0
    EMPTY_TOKEN = 1
    BASE64_DECODE_FAIL = 2
    DECOMPRESS_FAIL = 3
    JSON_PARSE_FAIL = 4
    JSON_NOT_OBJECT = 5
    USER_BUF_BASE64_FAIL = 6
    FIELD_MISSING = 7
    VERIFY_FAILED = 8
    EXPIRED = 9
    FIELD_TYPE_INVALID = 10
    APPID_AT_3RD_MISMATCH = 11
    ACCTYPE_MISMATCH = 12
    IDENTIFIER_MISMATCH = 13
    APP_ID_MISMATCH = 14
    ABNORMAL_USER_BUF = 15
    INTERNAL_ERROR = 16
    SIGN_FAILED = 17
    INVALID_ARGUMENT = 18


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.OK: "ok",
    ErrorCode.EMPTY_TOKEN: "token is empty",
    ErrorCode.BASE64_DECODE_FAIL: "token base64 decode failed",
    ErrorCode.DECOMPRESS_FAIL: "token decompression failed",
    ErrorCode.JSON_PARSE_FAIL: "token document is not valid JSON",
    ErrorCode.JSON_NOT_OBJECT: "token document is not a JSON object",
    ErrorCode.USER_BUF_BASE64_FAIL: "base64 field inside token document failed to decode",
    ErrorCode.FIELD_MISSING: "required field missing from token document",
    ErrorCode.VERIFY_FAILED: "signature verification failed, usually because the secret key is incorrect",
    ErrorCode.EXPIRED: "token expired",
    ErrorCode.FIELD_TYPE_INVALID: "token document field has the wrong type",
    ErrorCode.APPID_AT_3RD_MISMATCH: "app id inside the user buf does not match",
    ErrorCode.ACCTYPE_MISMATCH: "account type does not match",
    ErrorCode.IDENTIFIER_MISMATCH: "identifier does not match",
    ErrorCode.APP_ID_MISMATCH: "sdkappid does not match",
    ErrorCode.ABNORMAL_USER_BUF: "abnormal user buf",
    ErrorCode.INTERNAL_ERROR: "internal error",
    ErrorCode.SIGN_FAILED: "signing failed, usually due to an error in the private key",
    ErrorCode.INVALID_ARGUMENT: "invalid argument",
}


class TokenError(Exception):
    """Raised inside the codec/pipeline; converted to a result at the API edge."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = ErrorCode(code)
        self.message = message or DEFAULT_MESSAGES[self.code]
        super().__init__(f"{self.code.name}: {self.message}")
