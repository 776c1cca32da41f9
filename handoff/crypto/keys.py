"""Ed25519 signing key generation and JWK conversion."""

import base64

import jwt
import uuid_utils
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from handoff.crypto.types import JWKEntry, PrivateJWKEntry, SigningKeyData


def _bytes_to_base64url(raw: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def public_key_to_jwk_entry(public_key: Ed25519PublicKey, kid: str) -> JWKEntry:
    """Convert an Ed25519 public key to JWK format."""
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return JWKEntry(kid=kid, x=_bytes_to_base64url(raw))


def generate_ed25519_keypair() -> SigningKeyData:
    """Generate a new Ed25519 keypair for assertion signing."""
    private_key = Ed25519PrivateKey.generate()
    kid = str(uuid_utils.uuid7())
    public_jwk = public_key_to_jwk_entry(private_key.public_key(), kid)
    private_raw = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    private_jwk = PrivateJWKEntry(
        **public_jwk.model_dump(), d=_bytes_to_base64url(private_raw)
    )
    return SigningKeyData(kid=kid, private_jwk=private_jwk, public_jwk=public_jwk)


def load_private_key(private_jwk_json: str) -> Ed25519PrivateKey:
    """Load an Ed25519 private key from its JWK JSON form."""
    key = jwt.PyJWK.from_json(private_jwk_json).key
    if not isinstance(key, Ed25519PrivateKey):
        raise ValueError("JWK does not hold an Ed25519 private key")
    return key
