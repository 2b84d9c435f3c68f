from fastapi import Request
from giftshop.config import get_settings
from giftshop.services.session_store import InMemorySessionStore

_session_store = None

def get_session_store() -> InMemorySessionStore:
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore(ttl_seconds=get_settings().SESSION_TTL_SECONDS)
    return _session_store

def get_gateway(request: Request):
    return request.app.state.gateway

def get_ledger(request: Request):
    return request.app.state.ledger
