"""Command line interface for operating the SSO hand-off service."""

import asyncio
import json
import logging
import secrets
from pathlib import Path

import typer
import uvicorn

from handoff.core.settings import SsoSettings
from handoff.crypto.assertion import AssertionIssuer
from handoff.crypto.keys import generate_ed25519_keypair, load_private_key
from handoff.crypto.types import ASSERTION_DEFAULT_TTL, AssertionParams
from handoff.db.base import BaseEntity
from handoff.db.engine import dispose_engine, get_session_factory
from handoff.db.models_cache import CacheEntryEntity
from handoff.db.models_user import UserEntity

SHARED_SECRET_LENGTH = 48
SHARED_SECRET_ENV = "SSO_SHARED_SECRET"

_registered = (CacheEntryEntity, UserEntity)

app = typer.Typer(help="SSO hand-off service tools")


def generate_shared_secret() -> str:
    """Random secret for the deprecated shared-secret endpoint."""
    return secrets.token_urlsafe(SHARED_SECRET_LENGTH)[:SHARED_SECRET_LENGTH]


def write_env_value(env_file: Path, name: str, value: str) -> None:
    """Set ``name=value`` in a dotenv file, replacing an existing assignment."""
    lines = env_file.read_text().splitlines() if env_file.exists() else []
    entry = f"{name}={value}"
    for index, line in enumerate(lines):
        if line.startswith(f"{name}="):
            lines[index] = entry
            break
    else:
        lines.append(entry)
    env_file.write_text("\n".join(lines) + "\n")


@app.command("generate-secret")
def generate_secret(
    write_env: Path | None = typer.Option(
        None, help="Store it as SSO_SHARED_SECRET in this .env file"
    ),
) -> None:
    """Create a value for SSO_SHARED_SECRET.

    Without --write-env the secret is only printed and must be set by hand.
    """
    secret = generate_shared_secret()
    if write_env is not None:
        write_env_value(write_env, SHARED_SECRET_ENV, secret)
        typer.echo(f"{SHARED_SECRET_ENV} written to {write_env}")
    typer.echo(f"Generated new secret key: {secret}")


@app.command("generate-keypair")
def generate_keypair(
    out: Path | None = typer.Option(
        None, help="Write the private JWK here instead of printing it"
    ),
) -> None:
    """Create an Ed25519 issuer keypair; the public JWK goes to the key endpoint."""
    keypair = generate_ed25519_keypair()
    private_json = keypair.private_jwk.model_dump_json()
    if out is not None:
        out.write_text(private_json)
        out.chmod(0o600)
        typer.echo(f"Private JWK written to {out}")
    else:
        typer.echo(f"Private JWK: {private_json}")
    typer.echo(f"Public JWK: {keypair.public_jwk.model_dump_json()}")


@app.command("issue-assertion")
def issue_assertion(
    private_key_file: Path,
    user_id: int,
    ttl: int = typer.Option(ASSERTION_DEFAULT_TTL, help="Assertion lifetime (s)"),
) -> None:
    """Sign a hand-off assertion for USER_ID with the configured policy."""
    settings = SsoSettings()
    private_jwk = private_key_file.read_text()
    issuer = AssertionIssuer(
        load_private_key(private_jwk),
        issuer=settings.issuer,
        audience=settings.audience,
        subject=settings.subject,
        kid=json.loads(private_jwk).get("kid"),
    )
    typer.echo(issuer.issue(AssertionParams(user_id=user_id, ttl_seconds=ttl)))


async def _create_tables() -> None:
    factory = get_session_factory()
    async with factory() as session:
        conn = await session.connection()
        await conn.run_sync(BaseEntity.metadata.create_all)
        await session.commit()
    await dispose_engine()


@app.command("init-db")
def init_db() -> None:
    """Create the users and sso_cache tables if they are missing."""
    asyncio.run(_create_tables())
    typer.echo("Database tables created")


@app.command("serve")
def serve(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the hand-off HTTP service."""
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("handoff.core.app:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    app()
