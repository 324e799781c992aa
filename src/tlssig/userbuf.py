"""Binary permission buffer ("user buf") carried inside PrivateMapKey tokens.

Layout, all integers big-endian:

    u8   version          0 = numeric room, 1 = string room
    u16  account length   then the UTF-8 account bytes
    u32  app id
    u32  room id          0 when the room is a string
    u32  expire_at        absolute epoch seconds
    u32  privilege map
    u32  account type
    u16  room length      then the UTF-8 room bytes (version 1 only)
    u32  checksum         CRC-32 over every preceding byte
"""

from __future__ import annotations

import enum
import struct
import zlib
from dataclasses import dataclass

from tlssig.config import U32_MAX
from tlssig.errors import ErrorCode, TokenError

VERSION_NUMERIC_ROOM = 0
VERSION_STRING_ROOM = 1

_U8 = struct.Struct("!B")
_U16 = struct.Struct("!H")
_U32 = struct.Struct("!L")
_BODY = struct.Struct("!LLLLL")  # app_id, room_id, expire_at, privilege_map, account_type

U16_MAX = 0xFFFF


class Privilege(enum.IntFlag):
    """Room permission bits. Independent and additive."""

    CREATE_ROOM = 1
    ENTER_ROOM = 2
    SEND_AUDIO = 4
    RECV_AUDIO = 8
    SEND_VIDEO = 16
    RECV_VIDEO = 32
    SEND_SUBSTREAM_VIDEO = 64  # screen sharing
    RECV_SUBSTREAM_VIDEO = 128  # screen sharing
    ALL = 255


@dataclass(frozen=True)
class PermissionRecord:
    account: str
    app_id: int
    room: int | str  # int: numeric room id, str: string room id
    expire_at: int
    privilege_map: int
    account_type: int = 0

    @property
    def is_string_room(self) -> bool:
        return isinstance(self.room, str)

    @property
    def room_id(self) -> int:
        return 0 if isinstance(self.room, str) else self.room

    @property
    def room_str(self) -> str:
        return self.room if isinstance(self.room, str) else ""

    def has(self, privilege: Privilege) -> bool:
        return (self.privilege_map & privilege) == privilege


def _check_u32(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise ValueError(f"{name} must be an unsigned 32-bit integer, got {value!r}")


def _check_short_string(name: str, raw: bytes) -> None:
    if len(raw) > U16_MAX:
        raise ValueError(f"{name} is longer than {U16_MAX} bytes")


def encode_user_buf(record: PermissionRecord) -> bytes:
    """Serialize a permission record. Raises ValueError on out-of-range fields."""
    account = record.account.encode("utf-8")
    _check_short_string("account", account)
    _check_u32("app_id", record.app_id)
    _check_u32("expire_at", record.expire_at)
    _check_u32("privilege_map", record.privilege_map)
    _check_u32("account_type", record.account_type)

    if isinstance(record.room, str):
        room_str = record.room.encode("utf-8")
        if not room_str:
            raise ValueError("string room id must not be empty")
        _check_short_string("room", room_str)
        version = VERSION_STRING_ROOM
        room_id = 0
    else:
        _check_u32("room", record.room)
        room_str = b""
        version = VERSION_NUMERIC_ROOM
        room_id = record.room

    buf = bytearray()
    buf += _U8.pack(version)
    buf += _U16.pack(len(account)) + account
    buf += _BODY.pack(
        record.app_id,
        room_id,
        record.expire_at,
        int(record.privilege_map),
        record.account_type,
    )
    if version == VERSION_STRING_ROOM:
        buf += _U16.pack(len(room_str)) + room_str
    buf += _U32.pack(zlib.crc32(bytes(buf)) & U32_MAX)
    return bytes(buf)


def _abnormal(reason: str) -> TokenError:
    return TokenError(ErrorCode.ABNORMAL_USER_BUF, f"abnormal user buf: {reason}")


def decode_user_buf(data: bytes) -> PermissionRecord:
    """Parse and checksum-verify a permission buffer.

    Raises TokenError(ABNORMAL_USER_BUF) on any structural or checksum problem.
    """
    if len(data) < _U8.size + _U16.size + _BODY.size + _U32.size:
        raise _abnormal("buffer too short")

    body, (checksum,) = data[:-_U32.size], _U32.unpack(data[-_U32.size:])
    if zlib.crc32(body) & U32_MAX != checksum:
        raise _abnormal("checksum mismatch")

    offset = 0
    (version,) = _U8.unpack_from(body, offset)
    offset += _U8.size
    if version not in (VERSION_NUMERIC_ROOM, VERSION_STRING_ROOM):
        raise _abnormal(f"unknown version {version}")

    (account_len,) = _U16.unpack_from(body, offset)
    offset += _U16.size
    if offset + account_len + _BODY.size > len(body):
        raise _abnormal("account length overruns buffer")
    account_raw = body[offset:offset + account_len]
    offset += account_len

    app_id, room_id, expire_at, privilege_map, account_type = _BODY.unpack_from(body, offset)
    offset += _BODY.size

    room: int | str = room_id
    if version == VERSION_STRING_ROOM:
        if offset + _U16.size > len(body):
            raise _abnormal("missing room length")
        (room_len,) = _U16.unpack_from(body, offset)
        offset += _U16.size
        if room_len == 0 or offset + room_len > len(body):
            raise _abnormal("room length overruns buffer")
        try:
            room = body[offset:offset + room_len].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _abnormal("room is not UTF-8") from exc
        offset += room_len

    if offset != len(body):
        raise _abnormal("trailing bytes")

    try:
        account = account_raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise _abnormal("account is not UTF-8") from exc

    return PermissionRecord(
        account=account,
        app_id=app_id,
        room=room,
        expire_at=expire_at,
        privilege_map=privilege_map,
        account_type=account_type,
    )


def build_user_buf(
    account: str,
    app_id: int,
    account_type: int,
    expire_at: int,
    privilege_map: int,
    room: int | str,
) -> bytes:
    """Build a permission buffer from loose fields.

    `room` may be a numeric room id or a string room id.
    """
    return encode_user_buf(PermissionRecord(
        account=account,
        app_id=app_id,
        room=room,
        expire_at=expire_at,
        privilege_map=privilege_map,
        account_type=account_type,
    ))
