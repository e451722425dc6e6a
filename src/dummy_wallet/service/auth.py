"""Session tokens for the token-authenticated API.

Tokens are HS256 JWTs keyed with the service's signing secret, carrying the
wallet name as ``sub`` and an ``exp`` claim. Revoked tokens are remembered in
memory until they expire.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable

import jwt

from dummy_wallet.errors import DummyWalletError
from dummy_wallet.service.store import ServiceStore

JWT_ALGORITHM = "HS256"


class InvalidTokenError(DummyWalletError):
    """The token is malformed, forged, expired or revoked."""


class Auth:
    """Issue, verify and revoke expiring session tokens."""

    def __init__(
        self,
        logger: logging.Logger,
        store: ServiceStore,
        token_expiry: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.logger = logger
        self.token_expiry = token_expiry
        self._secret = bytes.fromhex(store.get_config().token_signing_secret)
        self._clock = clock
        self._revoked: dict[str, float] = {}
        self._lock = threading.Lock()

    def issue_token(self, wallet: str) -> str:
        payload = {
            "sub": wallet,
            "exp": int(self._clock()) + self.token_expiry,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)
        self.logger.debug(f"Token issued (wallet={wallet}, expiry={payload['exp']})")
        return token

    def _decode(self, token: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp", "jti"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("the token has expired") from exc
        except jwt.InvalidSignatureError as exc:
            raise InvalidTokenError("invalid token signature") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"malformed token: {exc}") from exc

        with self._lock:
            self._prune(self._clock())
            if payload["jti"] in self._revoked:
                raise InvalidTokenError("the token has been revoked")
        return payload

    def verify_token(self, token: str) -> str:
        """Return the wallet the token was issued for."""
        return self._decode(token)["sub"]

    def revoke_token(self, token: str) -> str:
        """Revoke a valid token and return the wallet it was issued for."""
        payload = self._decode(token)
        with self._lock:
            self._revoked[payload["jti"]] = payload["exp"]
        self.logger.debug(f"Token revoked (wallet={payload['sub']})")
        return payload["sub"]

    def _prune(self, now: float) -> None:
        for jti in [j for j, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]


def new_auth(logger: logging.Logger, store: ServiceStore, token_expiry: int) -> Auth:
    return Auth(logger, store, token_expiry)
