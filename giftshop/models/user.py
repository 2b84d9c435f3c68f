from sqlalchemy import Column, BigInteger, String, DateTime
from sqlalchemy.sql import func
from giftshop.database import Base

class User(Base):
    __tablename__ = "users"

    # Telegram user id, assigned externally
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    lang = Column(String(8), nullable=False)
    wallet_address = Column(String(80), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
