"""Gateway-neutral outbound effects collected while handling one inbound event."""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

@dataclass(frozen=True)
class InlineKeyboard:
    # rows of (label, action token)
    rows: Tuple[Tuple[Tuple[str, str], ...], ...]

@dataclass(frozen=True)
class MenuKeyboard:
    rows: Tuple[Tuple[str, ...], ...]

Keyboard = Union[InlineKeyboard, MenuKeyboard]

@dataclass(frozen=True)
class OutboundText:
    text: str
    keyboard: Optional[Keyboard] = None

@dataclass(frozen=True)
class OutboundMedia:
    media_reference: str
    keyboard: Optional[Keyboard] = None

@dataclass
class Reply:
    chat_id: int
    callback_id: Optional[str] = None
    effects: List[Union[OutboundText, OutboundMedia]] = field(default_factory=list)

    def message(self, text: str, keyboard: Optional[Keyboard] = None):
        self.effects.append(OutboundText(text, keyboard))

    def media(self, media_reference: str, keyboard: Optional[Keyboard] = None):
        self.effects.append(OutboundMedia(media_reference, keyboard))

    def clear(self):
        self.effects.clear()

    @property
    def texts(self) -> List[str]:
        return [e.text for e in self.effects if isinstance(e, OutboundText)]
