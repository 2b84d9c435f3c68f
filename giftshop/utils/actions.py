"""Callback action tokens: ``<verb>_<argument>``, e.g. ``buy_42`` or ``lang_en``."""
import enum
from typing import NamedTuple
from giftshop.exceptions import UnknownAction, InvalidInput

class ActionKind(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"
    UNSELL = "unsell"
    RARITY = "rarity"
    LANG = "lang"

class Action(NamedTuple):
    kind: ActionKind
    arg: str

    @classmethod
    def parse(cls, token: str) -> "Action":
        verb, sep, arg = (token or "").partition("_")
        if not sep or not arg:
            raise UnknownAction(f"Malformed action token: {token!r}")
        try:
            kind = ActionKind(verb)
        except ValueError:
            raise UnknownAction(f"Unknown action verb: {verb!r}")
        return cls(kind, arg)

    @property
    def token(self) -> str:
        return f"{self.kind.value}_{self.arg}"

    @property
    def gift_id(self) -> int:
        if self.kind not in (ActionKind.BUY, ActionKind.SELL, ActionKind.UNSELL):
            raise UnknownAction(f"{self.kind.value} does not refer to a gift")
        try:
            return int(self.arg)
        except ValueError:
            raise InvalidInput(f"Invalid gift id: {self.arg!r}")

def buy(gift_id: int) -> str:
    return Action(ActionKind.BUY, str(gift_id)).token

def sell(gift_id: int) -> str:
    return Action(ActionKind.SELL, str(gift_id)).token

def unsell(gift_id: int) -> str:
    return Action(ActionKind.UNSELL, str(gift_id)).token

def rarity(value: str) -> str:
    return Action(ActionKind.RARITY, value).token

def lang(code: str) -> str:
    return Action(ActionKind.LANG, code).token
