"""AES-GCM sealing of note payloads.

Sealed data layout: ``nonce (12 bytes) || ciphertext || tag (16 bytes)``.
A fresh random nonce is drawn for every call.
"""
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12


class CipherError(ValueError):
    """Sealed data is truncated, tampered with, or was sealed under another key."""


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """
    Seal ``plaintext`` under ``key``.

    :param bytes key: 16, 24 or 32 byte AES key
    :param bytes plaintext: Data to protect

    :return: Nonce followed by the authenticated ciphertext
    :rtype: bytes
    :raises ValueError: If the key has an invalid length
    """
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(key: bytes, data: bytes) -> bytes:
    """
    Open data produced by :func:`encrypt`.

    :param bytes key: Key used for sealing
    :param bytes data: Nonce followed by the authenticated ciphertext

    :return: Original plaintext
    :rtype: bytes
    :raises CipherError: If the data is too short or fails authentication
    """
    if len(data) < NONCE_SIZE:
        raise CipherError("ciphertext too short")
    nonce, sealed = data[:NONCE_SIZE], data[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, sealed, None)
    except InvalidTag:
        raise CipherError("message authentication failed") from None
