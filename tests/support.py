"""Test doubles and constants shared across the test suite."""

import httpx
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

ISSUER = "https://issuer.example"
AUDIENCE = "https://app.example"
KEY_URL = "https://issuer.example/api/sso-key"
START_TIME = 1_700_000_000.0

PLAIN_USER_ID = 42
ADMIN_USER_ID = 7
TOTP_USER_ID = 13
MISSING_USER_ID = 999


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class KeyEndpoint:
    """Stand-in for the issuer's key-distribution endpoint."""

    def __init__(self, body: str) -> None:
        self.body = body
        self.status_code = 200
        self.calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status_code, text=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def rsa_public_jwk() -> str:
    """A well-formed JWK of the wrong key type for EdDSA assertions."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return RSAAlgorithm.to_jwk(private_key.public_key())
