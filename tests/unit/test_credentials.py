"""
Unit tests for credential encryption and resolution.
"""

import pytest

from core.exceptions import CredentialUnavailableError
from core.security import (
    CredentialDecryptionError,
    decrypt_credential,
    encrypt_credential,
    mask_credential,
)
from database.models import User
from services.credentials import (
    CredentialResolver,
    CredentialSource,
    CredentialStatus,
    InvalidStoredCredential,
)

SECRET = "unit-test-secret"


def make_user(**overrides) -> User:
    values = dict(auth_id="auth0|cred", email="cred@example.com", has_own_credential=False)
    values.update(overrides)
    return User(**values)


class TestSecurity:
    def test_token_is_not_plaintext(self):
        token = encrypt_credential("AIzaSyExampleKey123", SECRET)

        assert "AIzaSyExampleKey123" not in token
        assert decrypt_credential(token, SECRET) == "AIzaSyExampleKey123"

    def test_wrong_secret_fails(self):
        token = encrypt_credential("AIzaSyExampleKey123", SECRET)

        with pytest.raises(CredentialDecryptionError):
            decrypt_credential(token, "another-secret")

    def test_garbage_token_fails(self):
        with pytest.raises(CredentialDecryptionError):
            decrypt_credential("not-a-fernet-token", SECRET)

    def test_default_secret_from_settings(self, settings):
        token = encrypt_credential("key-from-settings")
        assert decrypt_credential(token, settings.encryption_secret) == "key-from-settings"

    @pytest.mark.parametrize(
        "plaintext,masked",
        [
            ("AIzaSyExampleKey123", "AIza...123"),
            ("short", "*****"),
            ("12345678", "********"),
        ],
    )
    def test_mask(self, plaintext, masked):
        assert mask_credential(plaintext) == masked


class TestAssignAndClear:
    def test_assign_encrypts(self):
        resolver = CredentialResolver(secret=SECRET)
        user = make_user()

        resolver.assign(user, "  AIzaOwnKey9999  ")

        assert user.has_own_credential is True
        assert user.encrypted_api_key != "AIzaOwnKey9999"
        assert decrypt_credential(user.encrypted_api_key, SECRET) == "AIzaOwnKey9999"

    @pytest.mark.parametrize("empty", [None, "", "   "])
    def test_empty_key_clears(self, empty):
        resolver = CredentialResolver(secret=SECRET)
        user = make_user()
        resolver.assign(user, "AIzaOwnKey9999")

        resolver.assign(user, empty)

        assert user.has_own_credential is False
        assert user.encrypted_api_key is None


class TestResolve:
    def test_own_key_preferred(self):
        resolver = CredentialResolver(shared_api_key="shared", secret=SECRET)
        user = make_user()
        resolver.assign(user, "AIzaOwnKey9999")

        credential = resolver.resolve(user)

        assert credential.api_key == "AIzaOwnKey9999"
        assert credential.source == CredentialSource.OWN
        assert not credential.is_metered

    def test_shared_key_when_no_own_key(self):
        resolver = CredentialResolver(shared_api_key="shared", secret=SECRET)

        credential = resolver.resolve(make_user())

        assert credential.api_key == "shared"
        assert credential.source == CredentialSource.SHARED
        assert credential.is_metered

    def test_no_key_at_all(self):
        resolver = CredentialResolver(shared_api_key="", secret=SECRET)

        assert not resolver.has_shared_credential
        with pytest.raises(CredentialUnavailableError):
            resolver.resolve(make_user())

    def test_undecryptable_own_key_is_not_replaced_by_shared(self):
        resolver = CredentialResolver(shared_api_key="shared", secret=SECRET)
        user = make_user(
            has_own_credential=True,
            encrypted_api_key=encrypt_credential("AIzaOwnKey9999", "rotated-secret"),
        )

        with pytest.raises(InvalidStoredCredential):
            resolver.resolve(user)

    def test_flag_without_ciphertext(self):
        resolver = CredentialResolver(shared_api_key="shared", secret=SECRET)
        user = make_user(has_own_credential=True, encrypted_api_key=None)

        with pytest.raises(InvalidStoredCredential):
            resolver.resolve(user)


class TestCredentialStatus:
    def test_absent(self):
        resolver = CredentialResolver(secret=SECRET)
        assert resolver.credential_status(make_user()) == CredentialStatus.ABSENT

    def test_valid(self):
        resolver = CredentialResolver(secret=SECRET)
        user = make_user()
        resolver.assign(user, "AIzaOwnKey9999")

        assert resolver.credential_status(user) == CredentialStatus.VALID
        assert user.has_own_credential

    def test_unusable_key_is_cleared(self):
        resolver = CredentialResolver(secret=SECRET)
        user = make_user(has_own_credential=True, encrypted_api_key="garbage")

        assert resolver.credential_status(user) == CredentialStatus.CLEARED
        assert user.has_own_credential is False
        assert user.encrypted_api_key is None
