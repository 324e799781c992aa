"""Canonical message: the exact bytes the signature covers."""

from __future__ import annotations

import base64


def build_message(
    app_id: int,
    user_id: str,
    expire_seconds: int,
    issued_at: int,
    user_buf: bytes | None = None,
) -> bytes:
    """Build the signed content.

    One labelled line per field, in this fixed order:

        TLS.sdkappid:<app_id>
        TLS.identifier:<user_id>
        TLS.expire:<expire_seconds>
        TLS.time:<issued_at>
        TLS.userbuf:<base64 user_buf>     (only when a user buf is present)

    Issuance and verification must both go through here.
    """
    content = (
        f"TLS.sdkappid:{int(app_id)}\n"
        f"TLS.identifier:{user_id}\n"
        f"TLS.expire:{int(expire_seconds)}\n"
        f"TLS.time:{int(issued_at)}\n"
    )
    if user_buf is not None:
        content += f"TLS.userbuf:{base64.b64encode(user_buf).decode('ascii')}\n"
    return content.encode("utf-8")
