from pydantic import BaseModel
from typing import Optional

class TextEvent(BaseModel):
    """An inbound chat message. ``media_reference`` is set when a sticker was attached."""
    user_id: int
    chat_id: int
    text: str = ""
    media_reference: Optional[str] = None

class CallbackEvent(BaseModel):
    user_id: int
    chat_id: int
    callback_id: str
    action_token: str
