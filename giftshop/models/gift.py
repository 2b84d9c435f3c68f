from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, Float, Boolean, DateTime, Enum, ForeignKey, CheckConstraint,
)
from sqlalchemy.sql import func
from giftshop.database import Base
import enum

class Rarity(str, enum.Enum):
    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"

class Gift(Base):
    __tablename__ = "gifts"
    __table_args__ = (
        CheckConstraint(
            "(is_for_sale AND price > 0) OR (NOT is_for_sale AND price IS NULL)",
            name="ck_gifts_sale_state",
        ),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    rarity = Column(Enum(Rarity), nullable=False)
    price = Column(Float, nullable=True)  # TON, set only while listed
    is_for_sale = Column(Boolean, nullable=False, default=False, index=True)
    media_reference = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
