"""
Storage strategy for sensitive fields.

Every sensitive column is stored as a pair: the protected value and a lookup
index used in equality queries. The mode decides how the pair is produced:

    indexed        stored = seal(p)     index = index(p)
    deterministic  stored = encrypt(p)  index = encrypt(p)

`indexed` hides repeated plaintexts in the stored column while keeping
lookups possible; `deterministic` reproduces the legacy layout where the
ciphertext itself is the lookup key.
"""

from dataclasses import dataclass
from typing import Literal

from deskbook.security.field_cipher import FieldCipher

CipherMode = Literal["indexed", "deterministic"]


@dataclass(frozen=True)
class ProtectedValue:
    stored: str
    index: str


class FieldProtector:
    def __init__(self, cipher: FieldCipher, mode: CipherMode = "indexed"):
        if mode not in ("indexed", "deterministic"):
            raise ValueError(f"Unknown field cipher mode '{mode}'")
        self.cipher = cipher
        self.mode = mode

    def protect(self, plaintext: str) -> ProtectedValue:
        if self.mode == "deterministic":
            token = self.cipher.encrypt(plaintext)
            return ProtectedValue(stored=token, index=token)
        return ProtectedValue(
            stored=self.cipher.seal(plaintext),
            index=self.cipher.index(plaintext),
        )

    def lookup(self, plaintext: str) -> str:
        """Index value to query against for `plaintext`."""
        if self.mode == "deterministic":
            return self.cipher.encrypt(plaintext)
        return self.cipher.index(plaintext)

    def reveal(self, stored: str) -> str:
        """
        Recover the plaintext of a stored value.

        An empty stored value means the field was never set and reveals as "".
        Raises DecryptionError when the value belongs to another key.
        """
        if not stored:
            return ""
        if self.mode == "deterministic":
            return self.cipher.decrypt(stored)
        return self.cipher.unseal(stored)
