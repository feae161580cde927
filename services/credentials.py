"""
Credential selection for provider calls.

A request is backed either by the user's own API key (unmetered) or by the
shared key from settings (metered by the free-tier quota). The two are never
mixed: an invalid own key is removed and reported, never silently replaced by
the shared key.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum

from core.exceptions import CredentialUnavailableError
from core.security import (
    CredentialDecryptionError,
    decrypt_credential,
    encrypt_credential,
    mask_credential,
)
from database.models import User

logger = logging.getLogger(__name__)


class CredentialSource(StrEnum):
    """Which key backs a request."""

    OWN = "own"
    SHARED = "shared"


class CredentialStatus(StrEnum):
    """Outcome of verifying a user's stored key."""

    VALID = "valid"
    CLEARED = "cleared"
    ABSENT = "absent"


class InvalidStoredCredential(Exception):
    """The user's stored key is flagged but unusable (undecryptable or empty)."""


@dataclass
class ResolvedCredential:
    """API key chosen for a request, with its source."""

    api_key: str
    source: CredentialSource

    @property
    def is_metered(self) -> bool:
        return self.source == CredentialSource.SHARED


class CredentialResolver:
    """
    Assigns, clears and resolves provider credentials on user records.

    Mutations only touch the in-memory User; callers persist through their
    session.
    """

    def __init__(self, shared_api_key: str | None = None, secret: str | None = None):
        self._shared_api_key = shared_api_key or None
        self._secret = secret

    @property
    def has_shared_credential(self) -> bool:
        return self._shared_api_key is not None

    def assign(self, user: User, api_key: str | None) -> None:
        """Store an own key for the user. An empty key clears it instead."""
        api_key = (api_key or "").strip()
        if not api_key:
            self.clear(user)
            return

        user.encrypted_api_key = encrypt_credential(api_key, self._secret)
        user.has_own_credential = True
        logger.info(f"Own API key set for user {user.auth_id}: {mask_credential(api_key)}")

    def clear(self, user: User) -> None:
        """Remove the user's own key."""
        user.encrypted_api_key = None
        user.has_own_credential = False
        logger.info(f"Own API key cleared for user {user.auth_id}")

    def _decrypt_own(self, user: User) -> str:
        if not user.encrypted_api_key:
            raise InvalidStoredCredential("Stored credential is missing")
        try:
            api_key = decrypt_credential(user.encrypted_api_key, self._secret).strip()
        except CredentialDecryptionError as e:
            raise InvalidStoredCredential(str(e)) from e
        if not api_key:
            raise InvalidStoredCredential("Stored credential is empty")
        return api_key

    def resolve(self, user: User) -> ResolvedCredential:
        """
        Choose the key for a request.

        Raises:
            InvalidStoredCredential: The user is flagged as having an own key
                but it cannot be used
            CredentialUnavailableError: No own key and no shared key configured
        """
        if user.has_own_credential:
            return ResolvedCredential(api_key=self._decrypt_own(user), source=CredentialSource.OWN)

        if not self._shared_api_key:
            raise CredentialUnavailableError()

        return ResolvedCredential(api_key=self._shared_api_key, source=CredentialSource.SHARED)

    def credential_status(self, user: User) -> CredentialStatus:
        """Verify the stored own key, clearing it when it is unusable."""
        if not user.has_own_credential:
            return CredentialStatus.ABSENT

        try:
            self._decrypt_own(user)
        except InvalidStoredCredential as e:
            logger.warning(f"Unusable stored API key for user {user.auth_id}: {e}")
            self.clear(user)
            return CredentialStatus.CLEARED

        return CredentialStatus.VALID
