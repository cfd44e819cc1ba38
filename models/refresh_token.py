"""
RefreshToken model: opaque refresh tokens handed to clients.
Fields:
- token (unique, random hex)
- user_id - FK to users.id
- expires_at (absolute, naive UTC)
- created_at

A token is live only while its row exists and expires_at is in the future.
Rotation and logout delete rows; nothing sweeps stale ones.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} expires_at={self.expires_at}>"
