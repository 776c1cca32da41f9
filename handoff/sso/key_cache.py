"""Fetching and caching of the issuer's public signing key."""

import json
import logging

import httpx
import jwt

from handoff.core.settings import (
    KEY_ALGORITHM_DEFAULT,
    KEY_CACHE_TTL_DEFAULT,
    KEY_FETCH_TIMEOUT_DEFAULT,
)
from handoff.sso.errors import KeyFetchError
from handoff.store.base import KeyValueStore

logger = logging.getLogger(__name__)

KEY_CACHE_NAME = "sso_jwk_json"


class KeyCache:
    """Returns the issuer JWK, fetching it only when the shared cache is empty.

    The raw response body is cached, not the parsed key, so every process
    sharing the store parses the same bytes. Failed fetches are not cached.
    """

    def __init__(
        self,
        store: KeyValueStore,
        url: str,
        *,
        ttl_seconds: int = KEY_CACHE_TTL_DEFAULT,
        timeout: float = KEY_FETCH_TIMEOUT_DEFAULT,
        algorithm: str = KEY_ALGORITHM_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._url = url
        self._algorithm = algorithm
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout
        self._transport = transport

    async def get_public_key(self) -> jwt.PyJWK:
        """Return the issuer public key. Raises KeyFetchError."""
        cached = await self._store.get(KEY_CACHE_NAME)
        if cached is not None:
            return _parse_jwk(cached, self._algorithm)

        raw = await self._fetch()
        key = _parse_jwk(raw, self._algorithm)
        await self._store.put(KEY_CACHE_NAME, raw, self._ttl_seconds)
        logger.info("Cached issuer public key for %ss", self._ttl_seconds)
        return key

    async def _fetch(self) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(self._url)
        except httpx.HTTPError as exc:
            logger.error("Public key fetch from %s failed: %s", self._url, exc)
            raise KeyFetchError("Failed to fetch public key") from exc

        if not response.is_success:
            logger.error(
                "Public key fetch from %s returned %s", self._url, response.status_code
            )
            raise KeyFetchError("Failed to fetch public key")
        return response.text


def _parse_jwk(raw: str, algorithm: str) -> jwt.PyJWK:
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise KeyFetchError("Public key response is not JSON") from exc
    if not isinstance(data, dict):
        raise KeyFetchError("Public key response is not a JWK object")
    try:
        key = jwt.PyJWK(data)
    except jwt.PyJWTError as exc:
        raise KeyFetchError("Public key is not a usable JWK") from exc
    if key.algorithm_name != algorithm:
        logger.error(
            "Public key is a %s key (%s), expected %s",
            key.key_type,
            key.algorithm_name,
            algorithm,
        )
        raise KeyFetchError("Public key does not match the assertion algorithm")
    return key
