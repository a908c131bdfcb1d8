"""Unit tests for confluence_client.auth module."""

from unittest.mock import patch

import pytest

from conflux.confluence_client.auth import Authenticator, Credentials
from conflux.confluence_client.errors import InvalidCredentialsError

ENV_VARS = ('CONFLUENCE_URL', 'CONFLUENCE_USER', 'CONFLUENCE_API_TOKEN')


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestCredentials:
    """Test cases for Credentials NamedTuple."""

    def test_credentials_are_immutable(self):
        creds = Credentials(url="https://x", user="u", api_token="t")
        with pytest.raises(AttributeError):
            creds.url = "other"


@patch('conflux.confluence_client.auth.load_dotenv')
class TestAuthenticator:
    """Test cases for Authenticator class."""

    def test_init_loads_dotenv(self, mock_load_dotenv, clean_env):
        Authenticator()
        mock_load_dotenv.assert_called_once()

    def test_explicit_values_win(self, mock_load_dotenv, clean_env):
        clean_env.setenv('CONFLUENCE_URL', 'https://env.atlassian.net/wiki')

        creds = Authenticator(
            url="https://cfg.atlassian.net/wiki/", user="me@example.com", api_token="tok"
        ).get_credentials()

        assert creds.url == "https://cfg.atlassian.net/wiki"
        assert creds.user == "me@example.com"

    def test_environment_fallback(self, mock_load_dotenv, clean_env):
        """Values missing from the config are read from the environment."""
        clean_env.setenv('CONFLUENCE_URL', 'https://env.atlassian.net/wiki')
        clean_env.setenv('CONFLUENCE_USER', 'env@example.com')
        clean_env.setenv('CONFLUENCE_API_TOKEN', 'env-token')

        creds = Authenticator(user="me@example.com").get_credentials()

        assert creds.url == "https://env.atlassian.net/wiki"
        assert creds.user == "me@example.com"
        assert creds.api_token == "env-token"

    def test_missing_token_raises(self, mock_load_dotenv, clean_env):
        auth = Authenticator(url="https://x.atlassian.net/wiki", user="me@example.com")

        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth.get_credentials()

        assert exc_info.value.user == "me@example.com"
