"""
PasswordResetToken model: single-use reset tokens, at most one per user.
The unique constraint on user_id backs the "one outstanding token" rule.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class PasswordResetToken(BaseModel, Base):
    __tablename__ = "password_reset_tokens"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<PasswordResetToken user_id={self.user_id} expires_at={self.expires_at}>"
