"""
Per-user wizard state, held in process memory.

The store hands out copies: a handler edits its copy and only saves it back
once the step has succeeded. lock() serializes one user's events; different
users never wait on each other.

Idle wizards older than ``ttl_seconds`` are swept on access, and a user's
lock is only kept while some caller still holds a reference to it.
"""
import asyncio
import enum
import time
import weakref
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

class WizardStep(str, enum.Enum):
    NONE = "none"
    AWAITING_NAME = "awaiting_name"
    AWAITING_DESCRIPTION = "awaiting_description"
    AWAITING_RARITY = "awaiting_rarity"
    AWAITING_PRICE = "awaiting_price"

@dataclass
class ConversationState:
    step: WizardStep = WizardStep.NONE
    name: Optional[str] = None
    description: Optional[str] = None
    media_reference: Optional[str] = None
    target_gift_id: Optional[int] = None
    updated_at: float = field(default_factory=time.monotonic)

    @property
    def is_empty(self) -> bool:
        return self.step == WizardStep.NONE

class InMemorySessionStore:
    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._states: Dict[int, ConversationState] = {}
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._last_sweep = clock()

    def lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def _expired(self, state: ConversationState, now: float) -> bool:
        return bool(self.ttl_seconds) and now - state.updated_at > self.ttl_seconds

    def _sweep(self, now: float):
        # At most one full pass per TTL period
        if not self.ttl_seconds or now - self._last_sweep < self.ttl_seconds:
            return
        self._last_sweep = now
        for user_id in [uid for uid, state in self._states.items() if self._expired(state, now)]:
            del self._states[user_id]

    def get(self, user_id: int) -> ConversationState:
        now = self._clock()
        self._sweep(now)
        state = self._states.get(user_id)
        if state is None:
            return ConversationState(updated_at=now)
        if self._expired(state, now):
            del self._states[user_id]
            return ConversationState(updated_at=now)
        return replace(state)

    def save(self, user_id: int, state: ConversationState):
        now = self._clock()
        self._sweep(now)
        if state.is_empty:
            self._states.pop(user_id, None)
            return
        self._states[user_id] = replace(state, updated_at=now)

    def reset(self, user_id: int):
        self._states.pop(user_id, None)

    def __len__(self):
        return len(self._states)
