"""Credential resolution for the Confluence client.

Credentials come from the configuration file first; anything the file leaves
empty is read from the environment (a local .env file is loaded through
python-dotenv). Missing values are reported as InvalidCredentialsError.
"""

import os
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError


class Credentials(NamedTuple):
    """Confluence API credentials."""
    url: str
    user: str
    api_token: str


class Authenticator:
    """Resolves Confluence credentials from explicit values and the environment.

    Environment variables used as fallback:
        CONFLUENCE_URL: Confluence base URL (e.g., https://example.atlassian.net/wiki)
        CONFLUENCE_USER: Confluence user email address
        CONFLUENCE_API_TOKEN: Confluence API token

    Example:
        >>> auth = Authenticator(url="https://example.atlassian.net/wiki")
        >>> creds = auth.get_credentials()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        user: Optional[str] = None,
        api_token: Optional[str] = None,
    ):
        load_dotenv()
        self._url = url
        self._user = user
        self._api_token = api_token

    def get_credentials(self) -> Credentials:
        """Return the resolved credentials.

        Raises:
            InvalidCredentialsError: If any credential is missing from both sources
        """
        url = self._url or os.getenv('CONFLUENCE_URL')
        user = self._user or os.getenv('CONFLUENCE_USER')
        api_token = self._api_token or os.getenv('CONFLUENCE_API_TOKEN')

        if not url or not user or not api_token:
            raise InvalidCredentialsError(
                user=user if user else "unknown",
                endpoint=url if url else "unknown",
            )

        return Credentials(url=url.rstrip('/'), user=user, api_token=api_token)
