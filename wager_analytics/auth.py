"""
Shared-secret gate in front of every analytics route.

One process-wide secret, compared in constant time. There are no sessions,
tokens, or per-principal identities. An unconfigured secret rejects everyone.
"""

from __future__ import annotations

import hmac
from enum import Enum
from typing import Optional, Union

from pydantic import SecretStr

from wager_analytics.domain.errors import Unauthorized


class AuthDecision(str, Enum):
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"

    @property
    def allowed(self) -> bool:
        return self is AuthDecision.AUTHORIZED


class AuthGuard:
    def __init__(self, secret: Union[str, SecretStr, None]) -> None:
        if isinstance(secret, SecretStr):
            secret = secret.get_secret_value()
        self._secret: Optional[bytes] = secret.encode("utf-8") if secret else None

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def check(self, credential: Optional[str]) -> AuthDecision:
        """
        Authorized iff `credential` equals the configured secret byte-for-byte.
        """
        if self._secret is None or not isinstance(credential, str) or not credential:
            return AuthDecision.UNAUTHORIZED
        if hmac.compare_digest(credential.encode("utf-8"), self._secret):
            return AuthDecision.AUTHORIZED
        return AuthDecision.UNAUTHORIZED

    def require(self, credential: Optional[str]) -> None:
        if not self.check(credential).allowed:
            raise Unauthorized()


__all__ = ["AuthDecision", "AuthGuard"]
