import logging
from typing import List, Optional
from giftshop.config import get_settings
from giftshop.services.catalog_store import CatalogStore
from giftshop.services.ledger_service import resolve_account
from giftshop.schemas.gift import GiftResponse
from giftshop.utils.validators import validate_price, validate_rarity, validate_text, price_to_nanotons
from giftshop.exceptions import (
    NotOwner, AlreadyForSale, NotAvailable, SelfPurchase, InsufficientFunds, AlreadySold,
)

logger = logging.getLogger(__name__)

class MarketplaceService:
    """
    Gift ownership and sale-state transitions.

    Every mutation is a single conditional write whose WHERE clause carries the
    precondition (ownership, sale flag). A zero row count means the
    precondition did not hold at write time; the gift is only re-read after
    that to pick the rejection to report.
    """

    def __init__(self, store: CatalogStore, ledger, default_lang: Optional[str] = None):
        self.store = store
        self.ledger = ledger
        self.default_lang = default_lang or get_settings().DEFAULT_LANG

    async def create(
        self, owner_id: int, name: str, description: str, rarity, media_reference: Optional[str] = None
    ) -> GiftResponse:
        fields = {
            "owner_id": owner_id,
            "name": validate_text(name, "name"),
            "description": validate_text(description, "description"),
            "rarity": validate_rarity(rarity),
            "media_reference": media_reference,
            "is_for_sale": False,
            "price": None,
        }
        await self.store.ensure_user(owner_id, self.default_lang, commit=False)
        gift = await self.store.insert_gift(fields)
        logger.info(f"Gift {gift.id} created by user {owner_id} ({gift.rarity.value})")
        return GiftResponse.model_validate(gift)

    async def check_can_list(self, gift_id: int, owner_id: int) -> GiftResponse:
        gift = await self.store.get_gift(gift_id)
        if not gift or gift.owner_id != owner_id:
            raise NotOwner(f"User {owner_id} does not own gift {gift_id}")
        if gift.is_for_sale:
            raise AlreadyForSale(f"Gift {gift_id} is already listed")
        return GiftResponse.model_validate(gift)

    async def list_for_sale(self, gift_id: int, owner_id: int, price) -> GiftResponse:
        price = validate_price(price)
        count = await self.store.conditional_update_gift(
            gift_id,
            {"owner_id": owner_id, "is_for_sale": False},
            {"price": price, "is_for_sale": True},
        )
        gift = await self.store.get_gift(gift_id)
        if count == 0:
            if not gift or gift.owner_id != owner_id:
                logger.info(f"List rejected: user {owner_id} does not own gift {gift_id}")
                raise NotOwner(f"User {owner_id} does not own gift {gift_id}")
            logger.info(f"List rejected: gift {gift_id} already for sale")
            raise AlreadyForSale(f"Gift {gift_id} is already listed")
        logger.info(f"Gift {gift_id} listed by user {owner_id} for {price} TON")
        return GiftResponse.model_validate(gift)

    async def delist(self, gift_id: int, owner_id: int) -> GiftResponse:
        count = await self.store.conditional_update_gift(
            gift_id,
            {"owner_id": owner_id, "is_for_sale": True},
            {"price": None, "is_for_sale": False},
        )
        gift = await self.store.get_gift(gift_id)
        if count == 0:
            if not gift or gift.owner_id != owner_id:
                logger.info(f"Delist rejected: user {owner_id} does not own gift {gift_id}")
                raise NotOwner(f"User {owner_id} does not own gift {gift_id}")
            logger.info(f"Delist rejected: gift {gift_id} is not for sale")
            raise NotAvailable(f"Gift {gift_id} is not for sale")
        logger.info(f"Gift {gift_id} delisted by user {owner_id}")
        return GiftResponse.model_validate(gift)

    async def purchase(self, gift_id: int, buyer_id: int) -> GiftResponse:
        gift = await self.store.get_gift(gift_id)
        if not gift or not gift.is_for_sale:
            raise NotAvailable(f"Gift {gift_id} is not for sale")
        if gift.owner_id == buyer_id:
            raise SelfPurchase(f"User {buyer_id} already owns gift {gift_id}")
        seller_id, price = gift.owner_id, gift.price

        await self.verify_funds(buyer_id, price)

        # Buyer row must exist before owner_id can point at it
        await self.store.ensure_user(buyer_id, self.default_lang, commit=False)
        count = await self.store.conditional_update_gift(
            gift_id,
            {"owner_id": seller_id, "is_for_sale": True, "price": price},
            {"owner_id": buyer_id, "is_for_sale": False, "price": None},
            commit=False,
        )
        if count == 0:
            await self.store.rollback()
            logger.info(f"Purchase of gift {gift_id} by user {buyer_id} lost the race")
            raise AlreadySold(f"Gift {gift_id} was sold to someone else")
        await self.store.commit()

        logger.info(
            f"Gift {gift_id} sold by user {seller_id} to user {buyer_id} for {price} TON "
            f"(balance checked, no transfer performed)"
        )
        return GiftResponse.model_validate(await self.store.get_gift(gift_id))

    async def verify_funds(self, buyer_id: int, price: float):
        """Settlement gate: the buyer's ledger balance must cover the price."""
        account = resolve_account(await self.store.get_user_wallet(buyer_id))
        if not account:
            raise InsufficientFunds(f"No ledger account for user {buyer_id}")
        balance = await self.ledger.get_balance(account)
        required = price_to_nanotons(price)
        if balance < required:
            logger.info(f"Insufficient funds for user {buyer_id}: {balance} < {required}")
            raise InsufficientFunds(f"Balance {balance} below {required}")

    async def listing(self) -> List[GiftResponse]:
        gifts = await self.store.query_gifts(is_for_sale=True)
        return [GiftResponse.model_validate(g) for g in gifts]

    async def inventory(self, user_id: int) -> List[GiftResponse]:
        gifts = await self.store.query_gifts(owner_id=user_id)
        return [GiftResponse.model_validate(g) for g in gifts]
