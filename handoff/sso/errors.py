"""Exceptions raised by the hand-off pipeline."""

from enum import StrEnum


class SsoError(Exception):
    """Base class for every hand-off failure."""


class KeyFetchError(SsoError):
    """The issuer's public key could not be fetched or parsed."""


class MalformedAssertionError(SsoError):
    """The assertion is not a well-formed compact JWS with a JSON payload."""


class UnsupportedAlgorithmError(SsoError):
    """The assertion header names an algorithm other than the allowed one."""

    def __init__(self, algorithm: object) -> None:
        super().__init__(f"Unsupported algorithm: {algorithm!r}")
        self.algorithm = algorithm


class SignatureInvalidError(SsoError):
    """The assertion signature does not verify with the issuer key."""


class ClaimFailure(StrEnum):
    """Why a claim was rejected."""

    MISSING = "missing"
    WRONG_TYPE = "wrong_type"
    MISMATCH = "mismatch"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    SECOND_FACTOR_ENABLED = "second_factor_enabled"


class InvalidClaimError(SsoError):
    """A payload claim failed validation."""

    def __init__(self, claim: str, reason: ClaimFailure) -> None:
        super().__init__(f'Claim "{claim}" is invalid: {reason}')
        self.claim = claim
        self.reason = reason


class TokenNotFoundError(SsoError):
    """Exchange token never existed, expired, or was already redeemed."""


class TokenCollisionError(SsoError):
    """Could not store a fresh exchange token without overwriting another."""


class UserNotFoundError(SsoError):
    """A redeemed token pointed at a user that no longer exists."""
