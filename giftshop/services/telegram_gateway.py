"""
Telegram side of the messaging gateway: turns Bot API updates into inbound
events and delivers a Reply through ``telegram.Bot``.
"""
import logging
from typing import Optional, Union
from telegram import (
    Bot, Update, InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup, error,
)
from giftshop.schemas.events import TextEvent, CallbackEvent
from giftshop.services.reply import Reply, Keyboard, InlineKeyboard, MenuKeyboard, OutboundText, OutboundMedia
from giftshop.exceptions import GatewayUnavailable

logger = logging.getLogger(__name__)

def event_from_update(update: Update) -> Optional[Union[TextEvent, CallbackEvent]]:
    """Returns None for updates the bot does not act on (edits, joins, ...)."""
    query = update.callback_query
    if query is not None:
        if query.message is None or query.data is None:
            return None
        return CallbackEvent(
            user_id=query.from_user.id,
            chat_id=query.message.chat.id,
            callback_id=query.id,
            action_token=query.data,
        )

    message = update.message
    if message is None or message.from_user is None:
        return None
    media_reference = message.sticker.file_id if message.sticker else None
    text = message.text or message.caption or ""
    if not text and not media_reference:
        return None
    return TextEvent(
        user_id=message.from_user.id,
        chat_id=message.chat.id,
        text=text,
        media_reference=media_reference,
    )

def to_markup(keyboard: Optional[Keyboard]):
    if keyboard is None:
        return None
    if isinstance(keyboard, InlineKeyboard):
        return InlineKeyboardMarkup([
            [InlineKeyboardButton(label, callback_data=token) for label, token in row]
            for row in keyboard.rows
        ])
    if isinstance(keyboard, MenuKeyboard):
        return ReplyKeyboardMarkup(
            [[KeyboardButton(label) for label in row] for row in keyboard.rows],
            resize_keyboard=True,
            one_time_keyboard=False,
        )
    raise TypeError(f"Unsupported keyboard: {keyboard!r}")

class TelegramGateway:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None):
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=to_markup(keyboard))
        except error.TelegramError as e:
            raise GatewayUnavailable(f"send_message to {chat_id} failed: {e}") from e

    async def send_media(self, chat_id: int, media_reference: str, keyboard: Optional[Keyboard] = None):
        try:
            await self.bot.send_sticker(chat_id=chat_id, sticker=media_reference, reply_markup=to_markup(keyboard))
        except error.TelegramError as e:
            raise GatewayUnavailable(f"send_sticker to {chat_id} failed: {e}") from e

    async def answer_callback(self, callback_id: str):
        try:
            await self.bot.answer_callback_query(callback_query_id=callback_id)
        except error.TelegramError as e:
            raise GatewayUnavailable(f"answer_callback_query {callback_id} failed: {e}") from e

async def deliver(gateway, reply: Reply, failure_text: Optional[str] = None):
    """
    Sends the reply's effects one after another, then acknowledges the callback.

    On a gateway failure the remaining effects are dropped and a single
    failure notice is attempted; the error is logged either way.
    """
    try:
        for effect in reply.effects:
            if isinstance(effect, OutboundMedia):
                await gateway.send_media(reply.chat_id, effect.media_reference, effect.keyboard)
            elif isinstance(effect, OutboundText):
                await gateway.send_text(reply.chat_id, effect.text, effect.keyboard)
    except GatewayUnavailable as e:
        logger.error(f"[Gateway] delivery to chat_id={reply.chat_id} failed: {e}")
        if failure_text:
            try:
                await gateway.send_text(reply.chat_id, failure_text)
            except GatewayUnavailable as notice_error:
                logger.error(f"[Gateway] failure notice to chat_id={reply.chat_id} failed: {notice_error}")

    if reply.callback_id:
        try:
            await gateway.answer_callback(reply.callback_id)
        except GatewayUnavailable as e:
            logger.error(f"[Gateway] callback ack {reply.callback_id} failed: {e}")
