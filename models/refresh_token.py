"""
RefreshToken model: stores issued opaque refresh tokens so they can be
revoked and rotated.
Fields:
- token (opaque random string, unique)
- user_id (String(36)) - FK to users.id
- revoked (bool); rows are soft-revoked, never deleted
- created_at, expires_at
"""
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.utcnow())

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.revoked and not self.is_expired(now)

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.revoked}>"
