import asyncio
import sys
import os

# Ensure giftshop is in path
sys.path.append(os.getcwd())

from giftshop.database import AsyncSessionLocal, init_models
from giftshop.schemas.events import TextEvent, CallbackEvent
from giftshop.services.chatbot_service import ChatbotService
from giftshop.services.ledger_service import TonLedger
from giftshop.services.session_store import InMemorySessionStore
from giftshop.services.reply import InlineKeyboard, MenuKeyboard
from giftshop.services.telegram_gateway import deliver


class ConsoleGateway:
    """Prints outbound effects instead of calling the Bot API."""

    async def send_text(self, chat_id, text, keyboard=None):
        print(f"Bot: {text}")
        self.print_keyboard(keyboard)

    async def send_media(self, chat_id, media_reference, keyboard=None):
        print(f"Bot: [sticker {media_reference}]")
        self.print_keyboard(keyboard)

    async def answer_callback(self, callback_id):
        pass

    def print_keyboard(self, keyboard):
        if isinstance(keyboard, InlineKeyboard):
            for row in keyboard.rows:
                print("     " + "  ".join(f"[{label} -> !{token}]" for label, token in row))
        elif isinstance(keyboard, MenuKeyboard):
            for row in keyboard.rows:
                print("     " + "  ".join(f"[{label}]" for label in row))


async def simulate_chat():
    print("--- Gift Shop Bot Simulator ---")
    print("Type a message and press Enter.")
    print("'!<token>' presses an inline button, '#<file_id>' sends a sticker, 'quit' exits.")

    user_id = 1000
    print(f"Simulating user: {user_id}")

    await init_models()
    sessions = InMemorySessionStore()
    gateway = ConsoleGateway()
    ledger = TonLedger.from_settings()
    presses = 0

    try:
        async with AsyncSessionLocal() as db:
            service = ChatbotService(db, sessions, ledger)

            while True:
                user_input = input(f"You ({user_id}): ")
                if user_input.lower() in ['quit', 'exit']:
                    break

                if user_input.startswith("!"):
                    presses += 1
                    event = CallbackEvent(
                        user_id=user_id, chat_id=user_id, callback_id=str(presses), action_token=user_input[1:]
                    )
                elif user_input.startswith("#"):
                    file_id, _, caption = user_input[1:].partition(" ")
                    event = TextEvent(user_id=user_id, chat_id=user_id, text=caption, media_reference=file_id)
                else:
                    event = TextEvent(user_id=user_id, chat_id=user_id, text=user_input)

                async with sessions.lock(user_id):
                    reply = await service.handle_event(event)
                    await deliver(gateway, reply)
    finally:
        await ledger.aclose()

if __name__ == "__main__":
    try:
        asyncio.run(simulate_chat())
    except KeyboardInterrupt:
        print("\nExiting simulator.")
