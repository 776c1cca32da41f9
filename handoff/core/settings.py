"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

KEY_CACHE_TTL_DEFAULT = 3600
KEY_CACHE_TTL_DEBUG = 60
KEY_FETCH_TIMEOUT_DEFAULT = 10.0
EXCHANGE_TOKEN_TTL_DEFAULT = 60
KEY_ALGORITHM_DEFAULT = "EdDSA"
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="SSO_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "handoff"
    password: str = "handoff"
    database: str = "handoff"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Build async connection URL, preferring an explicit ``url``."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class SsoSettings(BaseSettings):
    """Hand-off policy, key source and redirect settings."""

    model_config = SettingsConfigDict(env_prefix="SSO_")

    issuer: str = "https://issuer.example"
    audience: str = "https://app.example"
    algorithm: str = KEY_ALGORITHM_DEFAULT
    subject: str = "sso"
    iat_leeway: int = 0

    public_key_url: str = "https://issuer.example/api/sso-key"
    key_fetch_timeout: float = KEY_FETCH_TIMEOUT_DEFAULT
    key_cache_ttl: int | None = None
    debug: bool = False

    exchange_token_ttl: int = EXCHANGE_TOKEN_TTL_DEFAULT
    store_backend: str = "database"
    redis_url: str = "redis://localhost:6379/0"

    session_secret: str = "change-me"
    shared_secret: str = ""

    home_redirect_path: str = "/"
    admin_redirect_path: str = "/admin"
    error_redirect_path: str = "/login"
    cors_origins: str = ""

    def get_key_cache_ttl(self) -> int:
        """Key cache lifetime: explicit value, else short in debug mode."""
        if self.key_cache_ttl is not None:
            return self.key_cache_ttl
        return KEY_CACHE_TTL_DEBUG if self.debug else KEY_CACHE_TTL_DEFAULT

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
