"""
DeskBook Backend - Field Cipher
=================================

What:  Keyed, reversible protection of short text values (names, emails,
       identifiers) so the database stores no plaintext personal data.
How:   The per-request session secret is stretched with HKDF-SHA256 into
       independent sub-keys, one per primitive:

           encrypt / decrypt   AES-SIV, deterministic authenticated encryption
           seal / unseal       AES-256-GCM with a random 96-bit nonce
           index               HMAC-SHA256 keyed hash

       All outputs are lowercase hex strings.
Who:   Instantiated per request by the session verifier; consumed through
       FieldProtector by the services.

Properties:
    decrypt(encrypt(p, k), k) == p
    encrypt(p, k1) != encrypt(p, k2) for k1 != k2 (independent derived keys)
    encrypt(p, k) is stable across calls (usable as an equality lookup key)
    decrypt(c, k) raises DecryptionError for any c not produced by encrypt(*, k)

Ciphertext layout:
    encrypt:  SIV tag (16 bytes) || ciphertext of (0x01 || utf8(p))
    seal:     nonce (12 bytes) || ciphertext of (0x01 || utf8(p)) || GCM tag (16 bytes)

    The leading format byte keeps the AES-SIV input non-empty, so the empty
    string is encryptable, and leaves room for a future format change.
"""

import hashlib
import hmac
import os
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, AESSIV
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from deskbook.exceptions import DecryptionError

Secret = Union[str, bytes]

_FORMAT_V1 = b"\x01"
_GCM_NONCE_SIZE = 12

# HKDF "info" labels, one per derived key
_INFO_SIV = b"deskbook/field-cipher/v1/siv"
_INFO_GCM = b"deskbook/field-cipher/v1/gcm"
_INFO_INDEX = b"deskbook/field-cipher/v1/index"


def _as_bytes(value: Secret) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def derive_key(secret: Secret, info: bytes, length: int, salt: bytes = b"") -> bytes:
    """HKDF-SHA256 sub-key for one purpose."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt or None,
        info=info,
    )
    return hkdf.derive(_as_bytes(secret))


def _encode(plaintext: str) -> bytes:
    if not isinstance(plaintext, str):
        raise TypeError(f"plaintext must be str, not {type(plaintext).__name__}")
    return _FORMAT_V1 + plaintext.encode("utf-8")


def _decode(payload: bytes) -> str:
    if not payload.startswith(_FORMAT_V1):
        raise DecryptionError(context={"reason": "unknown format"})
    try:
        return payload[len(_FORMAT_V1):].decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError(context={"reason": "invalid utf-8"}) from None


def _from_hex(ciphertext: str) -> bytes:
    if not isinstance(ciphertext, str):
        raise DecryptionError(context={"reason": "ciphertext is not a string"})
    try:
        return bytes.fromhex(ciphertext)
    except ValueError:
        raise DecryptionError(context={"reason": "malformed hex"}) from None


class FieldCipher:
    """
    Field-level cipher bound to one secret.

    Args:
        secret: The session secret (the verified caller's subject).
        salt:   Application-wide salt mixed into key derivation.
    """

    def __init__(self, secret: Secret, salt: Secret = b""):
        salt_bytes = _as_bytes(salt)
        self._siv = AESSIV(derive_key(secret, _INFO_SIV, 64, salt_bytes))
        self._gcm = AESGCM(derive_key(secret, _INFO_GCM, 32, salt_bytes))
        self._index_key = derive_key(secret, _INFO_INDEX, 32, salt_bytes)

    # ── Deterministic ─────────────────────────────────────────────────────

    def encrypt(self, plaintext: str) -> str:
        """Deterministic hex ciphertext; equal inputs give equal outputs."""
        return self._siv.encrypt(_encode(plaintext), None).hex()

    def decrypt(self, ciphertext: str) -> str:
        """Inverse of encrypt(); raises DecryptionError on any mismatch."""
        data = _from_hex(ciphertext)
        try:
            payload = self._siv.decrypt(data, None)
        except (InvalidTag, ValueError):
            raise DecryptionError(context={"reason": "authentication failed"}) from None
        return _decode(payload)

    # ── Randomized ────────────────────────────────────────────────────────

    def seal(self, plaintext: str) -> str:
        """Randomized hex ciphertext; a fresh nonce per call."""
        nonce = os.urandom(_GCM_NONCE_SIZE)
        return (nonce + self._gcm.encrypt(nonce, _encode(plaintext), None)).hex()

    def unseal(self, token: str) -> str:
        """Inverse of seal(); raises DecryptionError on any mismatch."""
        data = _from_hex(token)
        if len(data) <= _GCM_NONCE_SIZE:
            raise DecryptionError(context={"reason": "truncated ciphertext"})
        nonce, body = data[:_GCM_NONCE_SIZE], data[_GCM_NONCE_SIZE:]
        try:
            payload = self._gcm.decrypt(nonce, body, None)
        except InvalidTag:
            raise DecryptionError(context={"reason": "authentication failed"}) from None
        return _decode(payload)

    # ── Lookup index ──────────────────────────────────────────────────────

    def index(self, plaintext: str) -> str:
        """Keyed hash for equality lookups; not reversible."""
        return hmac.new(self._index_key, _encode(plaintext), hashlib.sha256).hexdigest()


def encrypt(plaintext: str, key: Secret, salt: Secret = b"") -> str:
    """Deterministically encrypt `plaintext` under `key`."""
    return FieldCipher(key, salt).encrypt(plaintext)


def decrypt(ciphertext: str, key: Secret, salt: Secret = b"") -> str:
    """Decrypt a value produced by encrypt() with the same key."""
    return FieldCipher(key, salt).decrypt(ciphertext)
