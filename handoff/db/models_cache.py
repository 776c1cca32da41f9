"""SQLAlchemy model for the shared expiring key/value cache."""

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from handoff.db.base import BaseEntity


class CacheEntryEntity(BaseEntity):
    """One cached value (public key JSON or pending exchange token)."""

    __tablename__ = "sso_cache"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    # Unix seconds; rows at or past this instant are treated as absent.
    expires_at: Mapped[float] = mapped_column(Float, nullable=False, index=True)
