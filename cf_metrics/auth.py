"""
Bearer token authentication.

The analytics API expects ``Authorization: Bearer <token>`` on every call.
A missing token is not rejected here: requests go out without the header and
the remote API answers with an authentication error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Result of authentication operation."""

    success: bool
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


class BearerTokenAuth:
    """
    Bearer token authentication method.

    Example:
        ```python
        auth = BearerTokenAuth("your-bearer-token")
        headers.update(auth.headers())
        ```
    """

    def __init__(self, token: str, header_name: str = "Authorization"):
        self._token = token
        self.header_name = header_name
        self._warned = False

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def authenticate(self) -> AuthResult:
        """
        Build the authentication headers.

        Returns:
            AuthResult containing the Authorization header, or an unsuccessful
            result without headers if no token is configured
        """
        if not self._token:
            return AuthResult(
                success=False, error="Bearer token is required but not provided"
            )

        return AuthResult(
            success=True, headers={self.header_name: f"Bearer {self._token}"}
        )

    def headers(self) -> Dict[str, str]:
        """Headers to merge into an outbound request."""
        result = self.authenticate()
        if not result.success and not self._warned:
            logger.warning("%s; requests will be sent unauthenticated", result.error)
            self._warned = True
        return result.headers

    def __repr__(self) -> str:
        return f"{type(self).__name__}(has_token={self.has_token})"
