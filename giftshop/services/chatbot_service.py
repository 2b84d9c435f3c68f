import logging
from functools import partial
from typing import Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from giftshop.services.catalog_store import CatalogStore
from giftshop.services.user_service import UserService
from giftshop.services.marketplace_service import MarketplaceService
from giftshop.services.localization import Localizer, get_localizer
from giftshop.services.session_store import ConversationState, InMemorySessionStore, WizardStep
from giftshop.services.reply import Reply, InlineKeyboard, MenuKeyboard
from giftshop.schemas.events import TextEvent, CallbackEvent
from giftshop.schemas.gift import GiftResponse
from giftshop.models.gift import Rarity
from giftshop.utils import actions
from giftshop.utils.actions import Action, ActionKind
from giftshop.exceptions import MarketplaceError, InvalidInput, UnknownAction, CollaboratorError, StoreUnavailable

logger = logging.getLogger(__name__)

def _format_price(price: Optional[float]) -> str:
    return f"{price:g}" if price is not None else ""

class ChatbotService:
    """
    Drives the create, sell and buy flows for one inbound event at a time.

    Callers must hold ``sessions.lock(user_id)`` while an event is handled so
    that one user's steps are never interleaved.
    """

    def __init__(
        self, db: AsyncSession, sessions: InMemorySessionStore, ledger, localizer: Optional[Localizer] = None
    ):
        self.localizer = localizer or get_localizer()
        self.store = CatalogStore(db)
        self.user_service = UserService(self.store, self.localizer)
        self.marketplace = MarketplaceService(self.store, ledger, self.localizer.default_lang)
        self.sessions = sessions
        self._action_handlers = {
            ActionKind.BUY: self.on_buy,
            ActionKind.SELL: self.on_sell,
            ActionKind.UNSELL: self.on_unsell,
            ActionKind.RARITY: self.on_rarity,
            ActionKind.LANG: self.on_lang,
        }

    async def handle_event(self, event: Union[TextEvent, CallbackEvent]) -> Reply:
        if isinstance(event, CallbackEvent):
            return await self.handle_callback(event)
        return await self.handle_message(event)

    async def user_lang(self, user_id: int) -> str:
        try:
            return await self.user_service.get_lang(user_id)
        except StoreUnavailable:
            return self.localizer.default_lang

    async def handle_message(self, event: TextEvent) -> Reply:
        user_id = event.user_id
        reply = Reply(chat_id=event.chat_id)
        lang = await self.user_lang(user_id)
        t = partial(self.localizer.text, lang)
        text = (event.text or "").strip()
        command, _, argument = text.partition(" ") if text.startswith("/") else ("", "", "")
        command = command.split("@", 1)[0].lower()
        state = self.sessions.get(user_id)

        logger.info(f"[Message] user_id={user_id}, step={state.step.value}, text='{text}'")

        try:
            if command == "/start":
                self.sessions.reset(user_id)
                reply.message(t("start"))
                self.show_main_menu(reply, lang)

            elif command == "/cancel":
                self.sessions.reset(user_id)
                reply.message(t("cancelled"))
                self.show_main_menu(reply, lang)

            elif command == "/wallet":
                await self.handle_wallet(user_id, argument.strip(), reply, lang)

            elif command:
                raise UnknownAction(f"Unknown command: {command!r}")

            # --- MENU ---
            elif text in self.localizer.labels("btn_catalog"):
                await self.show_catalog(reply, lang)

            elif text in self.localizer.labels("btn_inventory"):
                await self.show_inventory(user_id, reply, lang)

            elif text in self.localizer.labels("btn_language"):
                self.show_languages(reply, lang)

            elif text in self.localizer.labels("btn_create"):
                self.sessions.save(user_id, ConversationState(step=WizardStep.AWAITING_NAME))
                reply.message(t("enter_name"))

            # --- CREATE GIFT FLOW ---
            elif event.media_reference:
                state = ConversationState(step=WizardStep.AWAITING_NAME, media_reference=event.media_reference)
                if text:
                    state.name = text
                    state.step = WizardStep.AWAITING_DESCRIPTION
                    reply.message(t("enter_description"))
                else:
                    reply.message(t("enter_name"))
                self.sessions.save(user_id, state)

            elif state.step == WizardStep.AWAITING_NAME:
                if not text:
                    raise InvalidInput("Gift name must not be empty.")
                state.name = text
                state.step = WizardStep.AWAITING_DESCRIPTION
                self.sessions.save(user_id, state)
                reply.message(t("enter_description"))

            elif state.step == WizardStep.AWAITING_DESCRIPTION:
                if not text:
                    raise InvalidInput("Gift description must not be empty.")
                state.description = text
                state.step = WizardStep.AWAITING_RARITY
                self.sessions.save(user_id, state)
                reply.message(t("choose_rarity"), self.rarity_keyboard(lang))

            elif state.step == WizardStep.AWAITING_RARITY:
                reply.message(t("choose_rarity"), self.rarity_keyboard(lang))

            # --- SELL FLOW ---
            elif state.step == WizardStep.AWAITING_PRICE:
                try:
                    await self.marketplace.list_for_sale(state.target_gift_id, user_id, text)
                except InvalidInput:
                    raise
                except MarketplaceError:
                    self.sessions.reset(user_id)
                    raise
                self.sessions.reset(user_id)
                reply.message(t("listed"))
                self.show_main_menu(reply, lang)

            else:
                self.show_main_menu(reply, lang)

        except MarketplaceError as e:
            logger.info(f"[Rejected] user_id={user_id}: {type(e).__name__}: {e}")
            reply.clear()
            reply.message(t(e.message_key))
        except CollaboratorError as e:
            logger.error(f"[Failure] user_id={user_id}: {type(e).__name__}: {e}")
            reply.clear()
            reply.message(t("error"))

        return reply

    async def handle_callback(self, event: CallbackEvent) -> Reply:
        user_id = event.user_id
        reply = Reply(chat_id=event.chat_id, callback_id=event.callback_id)
        lang = await self.user_lang(user_id)

        logger.info(f"[Callback] user_id={user_id}, data='{event.action_token}'")

        try:
            action = Action.parse(event.action_token)
            await self._action_handlers[action.kind](user_id, action, reply, lang)
        except MarketplaceError as e:
            logger.info(f"[Rejected] user_id={user_id}: {type(e).__name__}: {e}")
            reply.clear()
            reply.message(self.localizer.text(lang, e.message_key))
        except CollaboratorError as e:
            logger.error(f"[Failure] user_id={user_id}: {type(e).__name__}: {e}")
            reply.clear()
            reply.message(self.localizer.text(lang, "error"))

        return reply

    async def on_rarity(self, user_id: int, action: Action, reply: Reply, lang: str):
        state = self.sessions.get(user_id)
        if state.step != WizardStep.AWAITING_RARITY:
            reply.message(self.localizer.text(lang, "nothing_to_do"))
            return

        await self.marketplace.create(
            user_id, state.name, state.description, action.arg, state.media_reference
        )
        self.sessions.reset(user_id)
        reply.message(self.localizer.text(lang, "added"))
        self.show_main_menu(reply, lang)

    async def on_sell(self, user_id: int, action: Action, reply: Reply, lang: str):
        gift_id = action.gift_id
        await self.marketplace.check_can_list(gift_id, user_id)
        self.sessions.save(user_id, ConversationState(step=WizardStep.AWAITING_PRICE, target_gift_id=gift_id))
        reply.message(self.localizer.text(lang, "enter_price"))

    async def on_unsell(self, user_id: int, action: Action, reply: Reply, lang: str):
        await self.marketplace.delist(action.gift_id, user_id)
        reply.message(self.localizer.text(lang, "removed_from_sale"))
        self.show_main_menu(reply, lang)

    async def on_buy(self, user_id: int, action: Action, reply: Reply, lang: str):
        await self.marketplace.purchase(action.gift_id, user_id)
        reply.message(self.localizer.text(lang, "purchase_success"))
        self.show_main_menu(reply, lang)

    async def on_lang(self, user_id: int, action: Action, reply: Reply, lang: str):
        new_lang = await self.user_service.set_lang(user_id, action.arg)
        reply.message(self.localizer.text(new_lang, "success"))
        self.show_main_menu(reply, new_lang)

    async def handle_wallet(self, user_id: int, address: str, reply: Reply, lang: str):
        t = partial(self.localizer.text, lang)
        if address:
            linked = await self.user_service.link_wallet(user_id, address)
            reply.message(t("wallet_linked", address=linked))
            return
        current = await self.user_service.get_wallet(user_id)
        if current:
            reply.message(t("wallet_current", address=current))
        reply.message(t("wallet_usage"))

    def show_main_menu(self, reply: Reply, lang: str):
        t = partial(self.localizer.text, lang)
        keyboard = MenuKeyboard((
            (t("btn_catalog"), t("btn_inventory")),
            (t("btn_create"), t("btn_language")),
        ))
        reply.message(t("menu"), keyboard)

    def show_languages(self, reply: Reply, lang: str):
        keyboard = InlineKeyboard(tuple(
            ((self.localizer.text(code, "language_name"), actions.lang(code)),)
            for code in self.localizer.languages
        ))
        reply.message(self.localizer.text(lang, "choose_language"), keyboard)

    def rarity_keyboard(self, lang: str) -> InlineKeyboard:
        return InlineKeyboard((tuple(
            (self.localizer.text(lang, f"rarity_{rarity.value}"), actions.rarity(rarity.value))
            for rarity in Rarity
        ),))

    def _caption(self, key: str, gift: GiftResponse, lang: str) -> str:
        return self.localizer.text(
            lang,
            key,
            id=gift.id,
            name=gift.name,
            description=gift.description,
            rarity=self.localizer.text(lang, f"rarity_{gift.rarity.value}"),
            price=_format_price(gift.price),
        )

    async def show_catalog(self, reply: Reply, lang: str):
        gifts = await self.marketplace.listing()
        if not gifts:
            reply.message(self.localizer.text(lang, "no_gifts"))
            return

        reply.message(self.localizer.text(lang, "catalog"))
        for gift in gifts:
            if gift.media_reference:
                reply.media(gift.media_reference)
            keyboard = InlineKeyboard((((self.localizer.text(lang, "btn_buy"), actions.buy(gift.id)),),))
            reply.message(self._caption("caption_catalog", gift, lang), keyboard)

    async def show_inventory(self, user_id: int, reply: Reply, lang: str):
        gifts = await self.marketplace.inventory(user_id)
        if not gifts:
            reply.message(self.localizer.text(lang, "no_gifts"))
            return

        reply.message(self.localizer.text(lang, "inventory"))
        for gift in gifts:
            caption = self._caption("caption_inventory", gift, lang)
            if gift.is_for_sale:
                caption += "\n" + self._caption("caption_on_sale", gift, lang)
                button = (self.localizer.text(lang, "btn_unsell"), actions.unsell(gift.id))
            else:
                button = (self.localizer.text(lang, "btn_sell"), actions.sell(gift.id))
            if gift.media_reference:
                reply.media(gift.media_reference)
            reply.message(caption, InlineKeyboard(((button,),)))
