"""
Static message tables.

Lookup falls back from the requested language to the default language; a key
missing from both is a LocalizationError. validate() is run at startup so a
table missing a required key in the default language fails fast.
"""
import logging
from functools import lru_cache
from typing import Dict, Optional, Set
from giftshop.config import get_settings
from giftshop.exceptions import LocalizationError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = frozenset({
    "language_name",
    "start", "menu", "catalog", "inventory", "no_gifts", "choose_language", "success",
    "cancelled", "error", "nothing_to_do",
    "enter_name", "enter_description", "choose_rarity", "added",
    "enter_price", "invalid_price", "listed", "removed_from_sale", "purchase_success",
    "invalid_input", "unknown_action", "not_owner", "already_for_sale", "not_available",
    "self_purchase", "insufficient_funds", "already_sold",
    "wallet_usage", "wallet_current", "wallet_linked",
    "btn_catalog", "btn_inventory", "btn_create", "btn_language",
    "btn_buy", "btn_sell", "btn_unsell",
    "rarity_common", "rarity_rare", "rarity_legendary",
    "caption_catalog", "caption_inventory", "caption_on_sale",
})

MESSAGES: Dict[str, Dict[str, str]] = {
    "ru": {
        "language_name": "Русский",
        "start": "👋 Добро пожаловать в магазин подарков!",
        "menu": "📋 Главное меню",
        "catalog": "🛍 Каталог подарков:",
        "inventory": "🎒 Ваш инвентарь:",
        "no_gifts": "Подарков пока нет.",
        "choose_language": "🌐 Выберите язык:",
        "success": "✅ Успешно!",
        "cancelled": "↩️ Действие отменено.",
        "error": "⚠️ Произошла ошибка. Попробуйте позже.",
        "nothing_to_do": "🤔 Эта кнопка больше не активна.",
        "enter_name": "📝 Введите название подарка:",
        "enter_description": "📃 Введите описание подарка:",
        "choose_rarity": "🌟 Выберите редкость подарка:",
        "added": "🎁 Подарок добавлен!",
        "enter_price": "💰 Введите цену для выставления на продажу:",
        "invalid_price": "❌ Неверный формат цены.",
        "listed": "📦 Подарок выставлен на продажу!",
        "removed_from_sale": "❌ Подарок снят с продажи",
        "purchase_success": "✅ Покупка завершена!",
        "invalid_input": "❌ Некорректный ввод, попробуйте ещё раз.",
        "unknown_action": "❌ Неизвестное действие.",
        "not_owner": "❌ Это не ваш подарок.",
        "already_for_sale": "❌ Этот подарок уже выставлен на продажу.",
        "not_available": "❌ Подарок не найден или не продается.",
        "self_purchase": "❌ Это ваш подарок.",
        "insufficient_funds": "❌ Недостаточно средств для покупки.",
        "already_sold": "❌ Этот подарок уже купили.",
        "wallet_usage": "👛 Привяжите кошелёк TON: /wallet <адрес>",
        "wallet_current": "👛 Ваш кошелёк: {address}",
        "wallet_linked": "✅ Кошелёк привязан: {address}",
        "btn_catalog": "🛍 Каталог",
        "btn_inventory": "🎒 Инвентарь",
        "btn_create": "🎁 Создать подарок",
        "btn_language": "🌐 Язык",
        "btn_buy": "Купить",
        "btn_sell": "📤 Продать",
        "btn_unsell": "🔽 Снять с продажи",
        "rarity_common": "⭐️ Обычный",
        "rarity_rare": "🌟 Редкий",
        "rarity_legendary": "💎 Легендарный",
        "caption_catalog": "🎁 {name} ({rarity})\n📃 {description}\n💰 {price} TON\n🆔 {id}",
        "caption_inventory": "🎁 {name} ({rarity})\n📃 {description}",
        "caption_on_sale": "💰 {price} TON (на продаже)",
    },
    "en": {
        "language_name": "English",
        "start": "👋 Welcome to the gift shop!",
        "menu": "📋 Main menu",
        "catalog": "🛍 Gift catalog:",
        "inventory": "🎒 Your inventory:",
        "no_gifts": "No gifts yet.",
        "choose_language": "🌐 Choose a language:",
        "success": "✅ Done!",
        "cancelled": "↩️ Cancelled.",
        "error": "⚠️ Something went wrong. Please try again later.",
        "nothing_to_do": "🤔 This button is no longer active.",
        "enter_name": "📝 Enter the gift name:",
        "enter_description": "📃 Enter the gift description:",
        "choose_rarity": "🌟 Choose the gift rarity:",
        "added": "🎁 Gift added!",
        "enter_price": "💰 Enter the sale price:",
        "invalid_price": "❌ Invalid price format.",
        "listed": "📦 Gift listed for sale!",
        "removed_from_sale": "❌ Gift removed from sale",
        "purchase_success": "✅ Purchase complete!",
        "invalid_input": "❌ Invalid input, please try again.",
        "unknown_action": "❌ Unknown action.",
        "not_owner": "❌ This is not your gift.",
        "already_for_sale": "❌ This gift is already for sale.",
        "not_available": "❌ Gift not found or not for sale.",
        "self_purchase": "❌ This is your own gift.",
        "insufficient_funds": "❌ Insufficient funds for this purchase.",
        "already_sold": "❌ This gift has already been sold.",
        "wallet_usage": "👛 Link a TON wallet: /wallet <address>",
        "wallet_current": "👛 Your wallet: {address}",
        "wallet_linked": "✅ Wallet linked: {address}",
        "btn_catalog": "🛍 Catalog",
        "btn_inventory": "🎒 Inventory",
        "btn_create": "🎁 Create gift",
        "btn_language": "🌐 Language",
        "btn_buy": "Buy",
        "btn_sell": "📤 Sell",
        "btn_unsell": "🔽 Remove from sale",
        "rarity_common": "⭐️ Common",
        "rarity_rare": "🌟 Rare",
        "rarity_legendary": "💎 Legendary",
        "caption_catalog": "🎁 {name} ({rarity})\n📃 {description}\n💰 {price} TON\n🆔 {id}",
        "caption_inventory": "🎁 {name} ({rarity})\n📃 {description}",
        "caption_on_sale": "💰 {price} TON (on sale)",
    },
}

class Localizer:
    def __init__(self, messages: Optional[Dict[str, Dict[str, str]]] = None, default_lang: Optional[str] = None):
        self.messages = MESSAGES if messages is None else messages
        self.default_lang = default_lang or get_settings().DEFAULT_LANG

    @property
    def languages(self):
        return list(self.messages)

    def validate(self):
        if self.default_lang not in self.messages:
            raise LocalizationError(f"Default language {self.default_lang!r} has no message table")
        missing = REQUIRED_KEYS - set(self.messages[self.default_lang])
        if missing:
            raise LocalizationError(
                f"Default language {self.default_lang!r} is missing keys: {', '.join(sorted(missing))}"
            )
        for lang, table in self.messages.items():
            gaps = REQUIRED_KEYS - set(table)
            if gaps:
                logger.warning(f"Language {lang!r} falls back to {self.default_lang!r} for: {', '.join(sorted(gaps))}")

    def text(self, lang: str, key: str, **params) -> str:
        template = self.messages.get(lang, {}).get(key)
        if template is None:
            template = self.messages.get(self.default_lang, {}).get(key)
        if template is None:
            raise LocalizationError(f"No message for key {key!r} in {lang!r} or {self.default_lang!r}")
        return template.format(**params) if params else template

    def labels(self, key: str) -> Set[str]:
        """The text of a key in every language, for matching menu buttons."""
        return {self.text(lang, key) for lang in self.messages}

@lru_cache()
def get_localizer() -> Localizer:
    return Localizer()
