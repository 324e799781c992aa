"""Tests for the binary permission buffer: layout, checksum, room variants."""

from __future__ import annotations

import struct

import pytest

from tlssig.errors import ErrorCode, TokenError
from tlssig.userbuf import (
    PermissionRecord,
    Privilege,
    build_user_buf,
    decode_user_buf,
    encode_user_buf,
)

EXPIRE_AT = 1_700_086_400


def _record(room: int | str = 5, privilege_map: int = 0b00101010) -> PermissionRecord:
    return PermissionRecord(
        account="alice_01",
        app_id=1400000000,
        room=room,
        expire_at=EXPIRE_AT,
        privilege_map=privilege_map,
        account_type=0,
    )


def test_bitmap_fidelity():
    """A numeric-room record survives encode/decode with its bitmap intact."""
    decoded = decode_user_buf(encode_user_buf(_record()))
    assert decoded.privilege_map == 42
    assert decoded.room == 5
    assert decoded.account_type == 0
    assert decoded.expire_at == EXPIRE_AT
    assert decoded == _record()


def test_corrupting_any_byte_is_abnormal():
    """Every single-byte corruption is caught by the checksum or structure checks."""
    data = encode_user_buf(_record())
    for i in range(len(data)):
        corrupted = bytearray(data)
        corrupted[i] ^= 0x01
        with pytest.raises(TokenError) as exc_info:
            decode_user_buf(bytes(corrupted))
        assert exc_info.value.code == ErrorCode.ABNORMAL_USER_BUF


def test_numeric_room_layout():
    data = encode_user_buf(_record())
    assert data[0] == 0  # version: numeric room
    (account_len,) = struct.unpack("!H", data[1:3])
    assert data[3:3 + account_len] == b"alice_01"
    app_id, room_id, expire_at, privilege_map, account_type = struct.unpack(
        "!LLLLL", data[3 + account_len:3 + account_len + 20]
    )
    assert (app_id, room_id, expire_at, privilege_map, account_type) == (
        1400000000, 5, EXPIRE_AT, 42, 0,
    )
    assert len(data) == 1 + 2 + account_len + 20 + 4


def test_string_room_variant():
    record = _record(room="lobby-7")
    data = encode_user_buf(record)
    assert data[0] == 1  # version: string room
    decoded = decode_user_buf(data)
    assert decoded.room == "lobby-7"
    assert decoded.is_string_room
    assert decoded.room_id == 0
    assert decoded.room_str == "lobby-7"


def test_build_user_buf_matches_record_encoding():
    data = build_user_buf("alice_01", 1400000000, 0, EXPIRE_AT, 42, 5)
    assert data == encode_user_buf(_record())


def test_truncated_buffer_is_abnormal():
    data = encode_user_buf(_record())
    with pytest.raises(TokenError) as exc_info:
        decode_user_buf(data[:-1])
    assert exc_info.value.code == ErrorCode.ABNORMAL_USER_BUF


def test_empty_buffer_is_abnormal():
    with pytest.raises(TokenError) as exc_info:
        decode_user_buf(b"")
    assert exc_info.value.code == ErrorCode.ABNORMAL_USER_BUF


def test_extended_buffer_is_abnormal():
    data = encode_user_buf(_record())
    with pytest.raises(TokenError) as exc_info:
        decode_user_buf(data + b"\x00")
    assert exc_info.value.code == ErrorCode.ABNORMAL_USER_BUF


def test_out_of_range_fields_rejected():
    with pytest.raises(ValueError):
        encode_user_buf(_record(room=2**32))
    with pytest.raises(ValueError):
        encode_user_buf(_record(privilege_map=-1))
    with pytest.raises(ValueError):
        encode_user_buf(_record(room=""))


def test_privilege_bits():
    """Eight independent bits; bit 8 is 128, not the 200 some old docs claim."""
    assert Privilege.RECV_SUBSTREAM_VIDEO == 128
    assert Privilege.ALL == 255
    assert Privilege.ENTER_ROOM | Privilege.RECV_AUDIO | Privilege.RECV_VIDEO == 42
    values = [p.value for p in Privilege if p is not Privilege.ALL]
    assert values == [1 << i for i in range(8)]


def test_record_has_privilege():
    record = _record(privilege_map=42)
    assert record.has(Privilege.ENTER_ROOM)
    assert record.has(Privilege.RECV_VIDEO)
    assert not record.has(Privilege.SEND_AUDIO)
    assert not record.has(Privilege.ENTER_ROOM | Privilege.CREATE_ROOM)
