"""AES-256-CBC encryption of short PII strings (passport / national ID numbers).

Tokens are ``<32 hex char iv>:<hex ciphertext>``. The AES key is derived once
per process from the configured secret with scrypt, so guessing the secret is
expensive but encrypt/decrypt calls are cheap.
"""

import re
import secrets
from functools import lru_cache

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.exceptions import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    MalformedTokenError,
)

IV_LENGTH = 16
KEY_LENGTH = 32
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

_IV_HEX = re.compile(r"^[0-9a-fA-F]{32}$")
_CIPHER_HEX = re.compile(r"^(?:[0-9a-fA-F]{32})+$")


def derive_key(secret: str, salt: str) -> bytes:
    """Derive the 256-bit AES key from the configured secret."""
    kdf = Scrypt(salt=salt.encode(), length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode())


class PIICipher:
    """Stateless encrypt/decrypt for identity numbers. Safe to share across tasks."""

    def __init__(self, secret: str, salt: str) -> None:
        if not secret:
            raise ConfigurationError("PII encryption key is not configured")
        if not salt:
            raise ConfigurationError("PII KDF salt is not configured")
        self._key = derive_key(secret, salt)

    def encrypt(self, plaintext: str | None) -> str | None:
        """Encrypt plaintext into a token. Empty or None values pass through."""
        if not plaintext:
            return plaintext
        try:
            iv = secrets.token_bytes(IV_LENGTH)
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except (ValueError, UnicodeEncodeError) as e:
            raise EncryptionError("Could not encrypt value") from e
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str | None) -> str | None:
        """Decrypt a token back to plaintext. Empty or None values pass through."""
        if not token:
            return token
        iv_hex, sep, cipher_hex = token.partition(":")
        if not sep:
            raise MalformedTokenError("Token is missing the iv separator")
        if not _IV_HEX.match(iv_hex):
            raise MalformedTokenError("Token iv must be 32 hex characters")
        if not _CIPHER_HEX.match(cipher_hex):
            raise MalformedTokenError("Token ciphertext must be whole hex-encoded AES blocks")

        iv = bytes.fromhex(iv_hex)
        ciphertext = bytes.fromhex(cipher_hex)
        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise DecryptionError("Token could not be decrypted") from e


def mask_identity(plaintext: str | None) -> str | None:
    """Show only the last four characters of an identity number."""
    if not plaintext:
        return None
    if len(plaintext) <= 4:
        return "****"
    return "****" + plaintext[-4:]


@lru_cache(maxsize=1)
def get_cipher() -> PIICipher:
    """Process-wide cipher built from the secrets backend.

    Raises ConfigurationError when no key is configured, so calling this at
    startup makes a missing key fatal.
    """
    from app.config import settings
    from app.services.secrets import get_pii_encryption_key

    try:
        secret = get_pii_encryption_key()
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    return PIICipher(secret, settings.pii_kdf_salt)
