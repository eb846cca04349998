"""
Sealing helpers shared by the local keystore backends.

A wrapped data key is ``nonce (12 bytes) || AES-GCM ciphertext+tag``.
The associated data is ``name@version`` so a wrapped key only opens under
the exact master key version that produced it.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keyshim.errors import DecryptionFailed

NONCE_SIZE = 12
MASTER_KEY_SIZES = (16, 24, 32)


def version_name(name: str, version: int) -> str:
    return f"{name}@{version}"


def check_material(name: str, material: bytes):
    if len(material) not in MASTER_KEY_SIZES:
        raise ValueError(
            f"Master key material for {name} must be 16, 24 or 32 bytes, got {len(material)}"
        )


def seal(material: bytes, name: str, version: int, plaintext: bytes) -> bytes:
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(material)
    return nonce + aesgcm.encrypt(nonce, plaintext, version_name(name, version).encode())


def unseal(material: bytes, name: str, version: int, wrapped: bytes) -> bytes:
    if len(wrapped) <= NONCE_SIZE:
        raise DecryptionFailed(f"Wrapped key for {version_name(name, version)} is truncated")
    nonce = wrapped[:NONCE_SIZE]
    enc = wrapped[NONCE_SIZE:]
    aesgcm = AESGCM(material)
    try:
        return aesgcm.decrypt(nonce, enc, version_name(name, version).encode())
    except InvalidTag as e:
        raise DecryptionFailed(
            f"Wrapped key rejected by {version_name(name, version)}"
        ) from e
