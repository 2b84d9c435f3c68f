from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from giftshop.models.gift import Rarity

class GiftBase(BaseModel):
    name: str
    description: str
    rarity: Rarity
    media_reference: Optional[str] = None

class GiftResponse(GiftBase):
    id: int
    owner_id: int
    price: Optional[float] = None
    is_for_sale: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
