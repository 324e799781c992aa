"""Signers and verifiers over the canonical message.

HMAC-SHA256 with the application secret is the default trust anchor.
Ed25519 is the private-key alternative for deployments that keep the
signing key away from verifiers.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)


class Signer(Protocol):
    def sign(self, message: bytes) -> bytes: ...


class Verifier(Protocol):
    def verify(self, message: bytes, signature: bytes) -> bool: ...


def _key_bytes(key: bytes | str) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


class HmacSha256Signer:
    """Symmetric signer; also its own verifier."""

    def __init__(self, key: bytes | str) -> None:
        self._key = _key_bytes(key)

    def sign(self, message: bytes) -> bytes:
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def verify(self, message: bytes, signature: bytes) -> bool:
        # compare_digest keeps the comparison constant-time
        return hmac.compare_digest(self.sign(message), signature)


class Ed25519Signer:
    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key

    @classmethod
    def from_pem(cls, pem: bytes | str, password: bytes | None = None) -> Ed25519Signer:
        """Load a PEM private key. Raises ValueError if it is not Ed25519."""
        key = serialization.load_pem_private_key(_key_bytes(pem), password=password)
        if not isinstance(key, Ed25519PrivateKey):
            raise ValueError("private key is not an Ed25519 key")
        return cls(key)

    @classmethod
    def from_b64(cls, sk_b64: str) -> Ed25519Signer:
        """Load a raw 32-byte Ed25519 seed encoded as standard base64."""
        raw = base64.b64decode(sk_b64.strip(), validate=True)
        if len(raw) != 32:
            raise ValueError("Ed25519 raw private key must be 32 bytes (base64 of 32 bytes)")
        return cls(Ed25519PrivateKey.from_private_bytes(raw))

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def verifier(self) -> Ed25519Verifier:
        return Ed25519Verifier(self._private_key.public_key())


class Ed25519Verifier:
    def __init__(self, public_key: Ed25519PublicKey) -> None:
        self._public_key = public_key

    @classmethod
    def from_pem(cls, pem: bytes | str) -> Ed25519Verifier:
        key = serialization.load_pem_public_key(_key_bytes(pem))
        if not isinstance(key, Ed25519PublicKey):
            raise ValueError("public key is not an Ed25519 key")
        return cls(key)

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, message)
        except InvalidSignature:
            return False
        return True


def sign(message: bytes, key: bytes | str) -> bytes:
    """HMAC-SHA256 of message under key."""
    return HmacSha256Signer(key).sign(message)


def verify(message: bytes, key: bytes | str, mac: bytes) -> bool:
    """Constant-time check of an HMAC-SHA256 tag."""
    return HmacSha256Signer(key).verify(message, mac)
