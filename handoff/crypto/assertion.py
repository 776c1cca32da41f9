"""Signing and verification of compact hand-off assertions (JWS, EdDSA)."""

import hashlib
import json
import time
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from handoff.crypto.types import AssertionParams
from handoff.sso.errors import (
    MalformedAssertionError,
    SignatureInvalidError,
    UnsupportedAlgorithmError,
)

ALLOWED_ALGORITHM = "EdDSA"
COMPACT_SEGMENTS = 3


def assertion_digest(compact: str) -> str:
    """SHA-256 of an assertion, safe to log for correlation."""
    return hashlib.sha256(compact.encode()).hexdigest()


class AssertionVerifier:
    """Verifies compact JWS assertions against a single allowed algorithm.

    The header algorithm is compared before any signature work, and the payload
    is only parsed as JSON once the signature has verified.
    """

    def __init__(self, algorithm: str = ALLOWED_ALGORITHM) -> None:
        self._algorithm = algorithm
        self._jws = jwt.PyJWS(algorithms=[algorithm])

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def verify(self, compact: str, key: jwt.PyJWK) -> dict[str, Any]:
        """Return the verified claims mapping of ``compact``."""
        segments = compact.split(".")
        if len(segments) != COMPACT_SEGMENTS or not all(
            (segments[0], segments[2])
        ):
            raise MalformedAssertionError("Expected header.payload.signature")

        try:
            header = jwt.get_unverified_header(compact)
        except jwt.InvalidTokenError as exc:
            raise MalformedAssertionError(str(exc)) from exc

        alg = header.get("alg")
        if alg != self._algorithm:
            raise UnsupportedAlgorithmError(alg)

        try:
            payload = self._jws.decode(compact, key.key, algorithms=[self._algorithm])
        except jwt.InvalidSignatureError as exc:
            raise SignatureInvalidError("Signature verification failed") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedAssertionError(str(exc)) from exc
        except jwt.PyJWTError as exc:
            # e.g. InvalidKeyError: the key cannot check this algorithm
            raise SignatureInvalidError("Key cannot verify assertion") from exc

        try:
            claims = json.loads(payload)
        except ValueError as exc:
            raise MalformedAssertionError("Payload is not valid JSON") from exc
        if not isinstance(claims, dict):
            raise MalformedAssertionError("Payload is not a JSON object")
        return claims


class AssertionIssuer:
    """Issues hand-off assertions; the issuer side of the exchange."""

    def __init__(
        self,
        private_key: Ed25519PrivateKey,
        *,
        issuer: str,
        audience: str,
        subject: str = "sso",
        kid: str | None = None,
    ) -> None:
        self._private_key = private_key
        self._issuer = issuer
        self._audience = audience
        self._subject = subject
        self._kid = kid

    def issue(self, params: AssertionParams) -> str:
        """Create a signed compact assertion for ``params.user_id``."""
        iat = params.issued_at if params.issued_at is not None else int(time.time())
        payload = {
            "iss": self._issuer,
            "aud": self._audience,
            "iat": iat,
            "exp": iat + params.ttl_seconds,
            "sub": self._subject,
            "user": params.user_id,
        }
        headers = {"kid": self._kid} if self._kid else None
        return jwt.encode(
            payload,
            self._private_key,
            algorithm=ALLOWED_ALGORITHM,
            headers=headers,
        )
