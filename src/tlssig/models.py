"""Data models: verified claims and the status/result shapes returned by the API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from tlssig.errors import DEFAULT_MESSAGES, ErrorCode, TokenError
from tlssig.userbuf import PermissionRecord


@dataclass(frozen=True)
class Claims:
    app_id: int
    user_id: str
    issued_at: int
    expire_seconds: int
    version: str
    permission: PermissionRecord | None = None

    @property
    def expires_at(self) -> int:
        return self.issued_at + self.expire_seconds

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IssueResult:
    code: int
    message: str
    token: str = ""

    @property
    def ok(self) -> bool:
        return self.code == ErrorCode.OK

    @classmethod
    def success(cls, token: str) -> IssueResult:
        return cls(code=ErrorCode.OK, message=DEFAULT_MESSAGES[ErrorCode.OK], token=token)

    @classmethod
    def failure(cls, error: TokenError) -> IssueResult:
        return cls(code=error.code, message=error.message)


@dataclass(frozen=True)
class VerifyResult:
    code: int
    message: str
    claims: Claims | None = None

    @property
    def ok(self) -> bool:
        return self.code == ErrorCode.OK

    @classmethod
    def success(cls, claims: Claims) -> VerifyResult:
        return cls(code=ErrorCode.OK, message=DEFAULT_MESSAGES[ErrorCode.OK], claims=claims)

    @classmethod
    def failure(cls, error: TokenError) -> VerifyResult:
        return cls(code=error.code, message=error.message)
