from fastapi import APIRouter, Request, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from telegram import Update
from giftshop.database import get_db
from giftshop.dependencies import get_gateway, get_ledger, get_session_store
from giftshop.services.chatbot_service import ChatbotService
from giftshop.services.session_store import InMemorySessionStore
from giftshop.services.telegram_gateway import event_from_update, deliver
from giftshop.config import get_settings
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

def validate_telegram_request(request: Request):
    secret = get_settings().TELEGRAM_WEBHOOK_SECRET
    if not secret:
        return
    if request.headers.get("X-Telegram-Bot-Api-Secret-Token", "") != secret:
        logger.warning("Rejected webhook call with a bad secret token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid secret token")

@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_gateway),
    ledger=Depends(get_ledger),
    sessions: InMemorySessionStore = Depends(get_session_store),
):
    validate_telegram_request(request)

    # Telegram redelivers an update on any non-2xx answer
    try:
        payload = await request.json()
        event = event_from_update(Update.de_json(payload, None))
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Dropping malformed update: {type(e).__name__}: {e}")
        return {"ok": True}
    if event is None:
        return {"ok": True}

    chatbot = ChatbotService(db, sessions, ledger)
    async with sessions.lock(event.user_id):
        reply = await chatbot.handle_event(event)
        lang = await chatbot.user_lang(event.user_id)
        await deliver(gateway, reply, chatbot.localizer.text(lang, "error"))

    return {"ok": True}
