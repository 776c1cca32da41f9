"""One-time exchange tokens standing in for a verified user during redirect."""

import logging
import secrets

from handoff.core.settings import EXCHANGE_TOKEN_TTL_DEFAULT
from handoff.sso.errors import TokenCollisionError, TokenNotFoundError
from handoff.store.base import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "sso_token:"
# 36 random bytes encode to exactly 48 URL-safe characters.
TOKEN_BYTES = 36
MINT_ATTEMPTS = 3


def generate_exchange_token() -> str:
    """Generate a cryptographically random, URL-path-safe token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


class ExchangeTokenStore:
    """Mints and redeems single-use exchange tokens in a shared store."""

    def __init__(
        self, store: KeyValueStore, ttl_seconds: int = EXCHANGE_TOKEN_TTL_DEFAULT
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    async def mint(self, user_id: int) -> str:
        """Store a fresh token for ``user_id`` and return it.

        A pending token is never overwritten; on collision a new token is drawn.
        """
        for _ in range(MINT_ATTEMPTS):
            token = generate_exchange_token()
            stored = await self._store.add_if_absent(
                TOKEN_KEY_PREFIX + token, str(user_id), self._ttl_seconds
            )
            if stored:
                return token
            logger.warning("Exchange token collision, drawing a new token")
        raise TokenCollisionError("Could not store a unique exchange token")

    async def redeem(self, token: str) -> int:
        """Consume ``token`` and return its user id. Raises TokenNotFoundError."""
        value = await self._store.take(TOKEN_KEY_PREFIX + token)
        if value is None:
            raise TokenNotFoundError("Token does not exist or has expired.")
        try:
            return int(value)
        except ValueError as exc:
            raise TokenNotFoundError("Token does not exist or has expired.") from exc
