"""Orchestration of assertion verification, token minting and redemption."""

import logging
import time
from collections.abc import Callable

from handoff.crypto.assertion import AssertionVerifier, assertion_digest
from handoff.sso.claims import ClaimValidator, UserDirectory, UserRecord
from handoff.sso.errors import (
    InvalidClaimError,
    SignatureInvalidError,
    UnsupportedAlgorithmError,
    UserNotFoundError,
)
from handoff.sso.exchange import ExchangeTokenStore
from handoff.sso.key_cache import KeyCache

logger = logging.getLogger(__name__)


class SsoService:
    """The hand-off flow: assertion in, exchange token out, user back.

    Built once per process; every collaborator is injected.
    """

    def __init__(
        self,
        *,
        key_cache: KeyCache,
        verifier: AssertionVerifier,
        validator: ClaimValidator,
        tokens: ExchangeTokenStore,
        users: UserDirectory,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._key_cache = key_cache
        self._verifier = verifier
        self._validator = validator
        self._tokens = tokens
        self._users = users
        self._clock = clock

    async def verify_assertion(self, assertion: str) -> int:
        """Verify signature and claims of ``assertion``; return the user id."""
        key = await self._key_cache.get_public_key()
        try:
            claims = self._verifier.verify(assertion, key)
            return await self._validator.validate(claims, int(self._clock()))
        except UnsupportedAlgorithmError as exc:
            logger.warning(
                "Rejected assertion with algorithm %r",
                exc.algorithm,
                extra={"token_hash": assertion_digest(assertion)},
            )
            raise
        except SignatureInvalidError:
            logger.warning(
                "JWS verification failed",
                extra={"token_hash": assertion_digest(assertion)},
            )
            raise
        except InvalidClaimError as exc:
            logger.warning(
                "Invalid claim %r in JWS: %s",
                exc.claim,
                exc.reason,
                extra={"token_hash": assertion_digest(assertion)},
            )
            raise

    async def request_login(self, assertion: str) -> str:
        """Verify ``assertion`` and mint an exchange token for its user."""
        user_id = await self.verify_assertion(assertion)
        return await self._tokens.mint(user_id)

    async def issue_token(self, user_id: int) -> str:
        """Mint an exchange token for an already-authorised user id."""
        return await self._tokens.mint(user_id)

    async def find_user(self, user_id: int) -> UserRecord | None:
        return await self._users.find_by_id(user_id)

    async def redeem(self, token: str) -> UserRecord:
        """Consume ``token`` and return the user it was minted for.

        Raises TokenNotFoundError for unknown, expired or used tokens and
        UserNotFoundError when the user has since disappeared.
        """
        user_id = await self._tokens.redeem(token)
        user = await self._users.find_by_id(user_id)
        if user is None:
            logger.warning("User not found during SSO login", extra={"user_id": user_id})
            raise UserNotFoundError(f"User {user_id} not found")
        return user
