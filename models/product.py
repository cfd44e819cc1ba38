from sqlalchemy import (
    Column,
    String,
    Integer,
    ForeignKey,
    Numeric,
    Text,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Product(BaseModel, Base):
    __tablename__ = "products"

    name = Column(String(255), nullable=False)  # trimmed; unique per owner
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)  # validated >= 0

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    owner = relationship("User", back_populates="products")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        UniqueConstraint("user_id", "name", name="uq_products_user_name"),
        Index("ix_products_user_created", "user_id", "created_at"),
    )
