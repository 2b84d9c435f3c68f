from contextlib import asynccontextmanager
from fastapi import FastAPI
from telegram import Bot
from giftshop.config import get_settings
from giftshop.database import init_models
from giftshop.routers import webhook
from giftshop.services.localization import get_localizer
from giftshop.services.ledger_service import TonLedger
from giftshop.services.telegram_gateway import TelegramGateway
from giftshop.utils.logging import setup_logging

logger = setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    get_localizer().validate()
    await init_models()
    logger.info("Database initialized")

    bot = Bot(settings.TELEGRAM_BOT_TOKEN)
    await bot.initialize()
    if settings.TELEGRAM_WEBHOOK_URL:
        await bot.set_webhook(
            url=settings.TELEGRAM_WEBHOOK_URL,
            secret_token=settings.TELEGRAM_WEBHOOK_SECRET or None,
            allowed_updates=["message", "callback_query"],
        )
        logger.info(f"Webhook registered at {settings.TELEGRAM_WEBHOOK_URL}")
    else:
        logger.warning("TELEGRAM_WEBHOOK_URL not set; webhook not registered")

    app.state.gateway = TelegramGateway(bot)
    app.state.ledger = TonLedger.from_settings(settings)

    yield

    await app.state.ledger.aclose()
    await bot.shutdown()

app = FastAPI(title="Gift Shop Telegram Bot", lifespan=lifespan)

app.include_router(webhook.router)

@app.get("/")
async def root():
    return {"message": "Gift Shop Bot is running"}
