"""Type definitions for Ed25519 signing keys and hand-off assertions."""

from pydantic import BaseModel

ASSERTION_DEFAULT_TTL = 30


class JWKEntry(BaseModel):
    """Public Ed25519 key in JWK form, as published by the issuer."""

    kty: str = "OKP"
    crv: str = "Ed25519"
    use: str = "sig"
    alg: str = "EdDSA"
    kid: str
    x: str


class PrivateJWKEntry(JWKEntry):
    """Ed25519 key pair in JWK form, kept by the issuer only."""

    d: str


class SigningKeyData(BaseModel):
    """An Ed25519 keypair for assertion signing."""

    kid: str
    private_jwk: PrivateJWKEntry
    public_jwk: JWKEntry


class AssertionParams(BaseModel):
    """Inputs for issuing one hand-off assertion."""

    user_id: int
    ttl_seconds: int = ASSERTION_DEFAULT_TTL
    issued_at: int | None = None
