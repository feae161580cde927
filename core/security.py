"""
Credential encryption helpers.

User-supplied provider keys are stored as Fernet tokens. The Fernet key is
derived from the configured encryption secret so that rotating the secret
invalidates every stored credential at once.
"""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from .config import get_settings


class CredentialDecryptionError(Exception):
    """Raised when a stored credential cannot be decrypted."""


def _derive_key(secret: str) -> bytes:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _get_fernet(secret: str | None = None) -> Fernet:
    if secret is None:
        secret = get_settings().encryption_secret
    return Fernet(_derive_key(secret))


def encrypt_credential(plaintext: str, secret: str | None = None) -> str:
    """
    Encrypt a provider API key for storage.

    Args:
        plaintext: The raw API key
        secret: Optional override for the encryption secret

    Returns:
        URL-safe Fernet token as text
    """
    token = _get_fernet(secret).encrypt(plaintext.encode("utf-8"))
    return token.decode("utf-8")


def decrypt_credential(ciphertext: str, secret: str | None = None) -> str:
    """
    Decrypt a stored provider API key.

    Args:
        ciphertext: Token produced by encrypt_credential
        secret: Optional override for the encryption secret

    Returns:
        The raw API key

    Raises:
        CredentialDecryptionError: If the token is malformed or was encrypted
            with a different secret
    """
    try:
        value = _get_fernet(secret).decrypt(ciphertext.encode("utf-8"))
    except (InvalidToken, ValueError, TypeError) as e:
        raise CredentialDecryptionError("Stored credential could not be decrypted") from e
    return value.decode("utf-8")


def mask_credential(plaintext: str) -> str:
    """Return a display-safe form of an API key (e.g. AIza...9xQ)."""
    if len(plaintext) <= 8:
        return "*" * len(plaintext)
    return f"{plaintext[:4]}...{plaintext[-3:]}"
