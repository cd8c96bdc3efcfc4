"""User-related database tables: staff accounts and their bearer tokens."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from src.db.tables import Base

ROLE_USER = "user"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"
STAFF_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})


class UserRow(Base):
    """Platform account. Only moderator/admin accounts may log in to this API."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=False)  # PBKDF2-SHA256
    role = Column(String(20), nullable=False, default=ROLE_USER)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class AccessTokenRow(Base):
    """Issued bearer token. Deleting the row revokes the token."""
    __tablename__ = "access_tokens"

    id = Column(String(32), primary_key=True)  # the token's jti claim
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False, default="moderator-token")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    last_used_at = Column(DateTime, nullable=True)

    user = relationship("UserRow", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_access_tokens_user", "user_id"),
    )
