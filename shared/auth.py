"""Bearer token check for the HTTP API."""

import hmac
from typing import Optional

from shared.errors import UnauthorizedError

BEARER_PREFIX = "Bearer "


class AuthGuard:
    """
    Validates an Authorization header against the configured API secret.

    Missing header, another scheme, and a wrong token all fail the same way.
    An empty secret never authorizes anything.
    """

    def __init__(self, secret: Optional[str]):
        self._secret = secret or ""

    def check(self, authorization: Optional[str]) -> None:
        """
        Args:
            authorization: Raw Authorization header value, or None if absent

        Raises:
            UnauthorizedError: Unless the header is "Bearer <secret>"
        """
        if not self._secret or not authorization:
            raise UnauthorizedError()
        if not authorization.startswith(BEARER_PREFIX):
            raise UnauthorizedError()

        token = authorization[len(BEARER_PREFIX):]
        if not hmac.compare_digest(token.encode("utf-8"), self._secret.encode("utf-8")):
            raise UnauthorizedError()

    def is_authorized(self, authorization: Optional[str]) -> bool:
        try:
            self.check(authorization)
        except UnauthorizedError:
            return False
        return True
