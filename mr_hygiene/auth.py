"""Pre-shared API key check for the shared dashboard endpoint.

Over stdio the server is a child process of one user's MCP client and only
reads that user's own GitLab and Jira tokens, so there is no second caller
to check.  Served over streamable-http, the same process answers anyone who
can reach the port with MR and ticket data fetched under the service
tokens, so ``initialize()`` installs this verifier on that transport only
and every request must present ``MCP_AUTH_TOKEN`` as a bearer token.
"""

import hmac

from fastmcp.server.auth import AccessToken, TokenVerifier

_MIN_TOKEN_LENGTH = 32


class ApiKeyVerifier(TokenVerifier):
    """Accept only the configured ``MCP_AUTH_TOKEN``.

    Args:
        token: The expected key (must be >= 32 characters).

    Raises:
        ValueError: If *token* is empty or shorter than 32 characters.
    """

    def __init__(self, token: str) -> None:
        if not token or len(token) < _MIN_TOKEN_LENGTH:
            raise ValueError(
                f"MCP auth token must be at least {_MIN_TOKEN_LENGTH} characters, "
                f"got {len(token) if token else 0}"
            )
        super().__init__()
        self._token = token

    async def verify_token(self, token: str) -> AccessToken | None:
        """Return an ``AccessToken`` when *token* matches, ``None`` otherwise."""
        if hmac.compare_digest(token.encode(), self._token.encode()):
            return AccessToken(token=token, client_id="dashboard", scopes=[])
        return None
