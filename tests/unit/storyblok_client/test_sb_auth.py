"""Unit tests for storyblok_client.auth module."""

import pytest
from unittest.mock import patch

from src.storyblok_client.auth import MANAGEMENT_API_URL, Authenticator
from src.storyblok_client.errors import InvalidCredentialsError


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the authenticator reads."""
    for name in ('SB_TOKEN', 'SOURCE_SPACE_ID', 'TARGET_SPACE_ID', 'SB_MA_URL'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAuthenticator:
    """Test cases for Authenticator.get_credentials()."""

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_loads_dotenv_on_init(self, mock_load_dotenv):
        """The .env file is loaded when the authenticator is created."""
        Authenticator()

        mock_load_dotenv.assert_called_once()

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_returns_credentials(self, mock_load_dotenv, clean_env):
        """Token, space ids and default URL are returned."""
        # Arrange
        clean_env.setenv('SB_TOKEN', ' secret-token ')
        clean_env.setenv('SOURCE_SPACE_ID', '111')
        clean_env.setenv('TARGET_SPACE_ID', '222')

        # Act
        creds = Authenticator().get_credentials()

        # Assert
        assert creds.token == 'secret-token'
        assert creds.source_space_id == 111
        assert creds.target_space_id == 222
        assert creds.api_url == MANAGEMENT_API_URL

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_space_ids_are_optional(self, mock_load_dotenv, clean_env):
        """Missing space ids come back as None."""
        clean_env.setenv('SB_TOKEN', 'secret-token')

        creds = Authenticator().get_credentials()

        assert creds.source_space_id is None
        assert creds.target_space_id is None

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_missing_token_raises(self, mock_load_dotenv, clean_env):
        """A missing SB_TOKEN raises InvalidCredentialsError."""
        with pytest.raises(InvalidCredentialsError) as exc_info:
            Authenticator().get_credentials()

        assert "SB_TOKEN" in str(exc_info.value)

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_non_numeric_space_id_raises(self, mock_load_dotenv, clean_env):
        """A non-numeric space id is rejected."""
        clean_env.setenv('SB_TOKEN', 'secret-token')
        clean_env.setenv('SOURCE_SPACE_ID', 'abc')

        with pytest.raises(InvalidCredentialsError) as exc_info:
            Authenticator().get_credentials()

        assert "SOURCE_SPACE_ID" in str(exc_info.value)

    @patch('src.storyblok_client.auth.load_dotenv')
    def test_api_url_override(self, mock_load_dotenv, clean_env):
        """SB_MA_URL overrides the management API base URL."""
        clean_env.setenv('SB_TOKEN', 'secret-token')
        clean_env.setenv('SB_MA_URL', 'https://api-us.storyblok.com/v1')

        creds = Authenticator().get_credentials()

        assert creds.api_url == 'https://api-us.storyblok.com/v1'
