"""
Tests for stored GitHub token encryption and token resolution.
"""

import pytest
import pytest_asyncio
from datetime import datetime
from unittest.mock import patch
from cryptography.fernet import Fernet

from rundown.database.models import UserDB
from rundown.database.repositories.users import UserRepository
from rundown.services.github_tokens import connect_github_account, get_user_github_token
from rundown.utils.encryption import TokenEncryption


@pytest.fixture
def key():
    return Fernet.generate_key().decode()


class TestTokenEncryption:
    """Test Fernet encryption of access tokens."""

    def test_encrypt_decrypt(self, key):
        encryption = TokenEncryption(key)

        encrypted = encryption.encrypt("ghp_secret")

        assert encrypted != "ghp_secret"
        assert encryption.decrypt(encrypted) == "ghp_secret"

    def test_not_configured_without_key(self):
        encryption = TokenEncryption("")

        assert encryption.is_configured is False
        assert encryption.decrypt("anything") is None
        with pytest.raises(RuntimeError):
            encryption.encrypt("ghp_secret")

    def test_invalid_key_leaves_encryption_off(self):
        encryption = TokenEncryption("not-a-fernet-key")

        assert encryption.is_configured is False

    def test_token_from_other_key_is_unreadable(self, key):
        other = TokenEncryption(Fernet.generate_key().decode())
        encrypted = other.encrypt("ghp_secret")

        assert TokenEncryption(key).decrypt(encrypted) is None


class TestGitHubTokenResolution:
    """Test choosing between a user's token and the shared token."""

    def _user(self, token=None, connected=True):
        return UserDB(
            id=1,
            email="ada@example.com",
            github_username="ada",
            github_access_token=token,
            github_connected_at=datetime(2026, 1, 1) if connected else None,
        )

    def test_user_token_wins(self, key):
        encryption = TokenEncryption(key)
        user = self._user(encryption.encrypt("ghp_user"))

        with patch("rundown.services.github_tokens.settings") as mock_settings:
            mock_settings.github_token = "ghp_shared"
            assert get_user_github_token(user, encryption) == "ghp_user"

    def test_falls_back_to_shared_token(self, key):
        user = self._user(None)

        with patch("rundown.services.github_tokens.settings") as mock_settings:
            mock_settings.github_token = "ghp_shared"
            assert get_user_github_token(user, TokenEncryption(key)) == "ghp_shared"

    def test_undecryptable_token_falls_back(self, key):
        user = self._user("garbage")

        with patch("rundown.services.github_tokens.settings") as mock_settings:
            mock_settings.github_token = "ghp_shared"
            assert get_user_github_token(user, TokenEncryption(key)) == "ghp_shared"

    def test_no_token_anywhere(self, key):
        user = self._user(None, connected=False)

        with patch("rundown.services.github_tokens.settings") as mock_settings:
            mock_settings.github_token = ""
            assert get_user_github_token(user, TokenEncryption(key)) is None


class TestConnectGitHubAccount:
    """connect_github_account stores the identity report generation reads back."""

    @pytest_asyncio.fixture
    async def users(self, test_db):
        repo = UserRepository()
        repo.db = test_db
        with patch("rundown.services.github_tokens.get_user_repository", return_value=repo):
            yield repo

    @pytest.mark.asyncio
    async def test_stores_username_and_encrypted_token(self, users, key):
        user = await users.create("ada@example.com")
        encryption = TokenEncryption(key)

        with patch("rundown.services.github_tokens.get_token_encryption", return_value=encryption):
            await connect_github_account(user.id, "ada-l", access_token="ghp_secret")

        stored = await users.get_by_id(user.id)
        assert stored.github_username == "ada-l"
        assert stored.github_access_token != "ghp_secret"
        assert get_user_github_token(stored, encryption) == "ghp_secret"

    @pytest.mark.asyncio
    async def test_token_requires_encryption_key(self, users):
        user = await users.create("ada@example.com")

        with patch("rundown.services.github_tokens.get_token_encryption", return_value=TokenEncryption("")):
            with pytest.raises(RuntimeError):
                await connect_github_account(user.id, "ada-l", access_token="ghp_secret")

        assert (await users.get_by_id(user.id)).github_username is None
