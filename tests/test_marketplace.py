import asyncio
import pytest
from giftshop.models.gift import Rarity
from giftshop.schemas.gift import GiftResponse
from giftshop.services.catalog_store import CatalogStore
from giftshop.services.marketplace_service import MarketplaceService
from giftshop.exceptions import (
    InvalidInput, InvalidPrice, NotOwner, AlreadyForSale, NotAvailable, SelfPurchase, InsufficientFunds, AlreadySold,
)

TON = 10 ** 9

async def snapshot(store, gift_id):
    return GiftResponse.model_validate(await store.get_gift(gift_id)).model_dump()

async def make_gift(marketplace, owner_id=1, name="Star"):
    return await marketplace.create(owner_id, name, "shiny", "rare", "STICKER_1")

@pytest.mark.asyncio
async def test_round_trip(marketplace, store, ledger):
    gift = await marketplace.create(1, "Star", "shiny", "rare")
    assert gift.is_for_sale is False
    assert gift.price is None
    assert gift.owner_id == 1
    assert gift.rarity == Rarity.RARE

    listed = await marketplace.list_for_sale(gift.id, 1, 2.5)
    assert listed.is_for_sale is True
    assert listed.price == 2.5

    await store.set_user_wallet(2, "wallet-2", "ru")
    ledger.balances["wallet-2"] = 3 * TON
    bought = await marketplace.purchase(gift.id, 2)
    assert bought.owner_id == 2
    assert bought.is_for_sale is False
    assert bought.price is None
    assert ledger.calls == ["wallet-2"]

@pytest.mark.asyncio
async def test_create_registers_owner(marketplace, store):
    await make_gift(marketplace, owner_id=77)
    assert await store.get_user_lang(77) == "ru"

@pytest.mark.asyncio
async def test_create_rejects_bad_fields(marketplace, store):
    with pytest.raises(InvalidInput):
        await marketplace.create(1, "   ", "shiny", "rare")
    with pytest.raises(InvalidInput):
        await marketplace.create(1, "Star", "", "rare")
    with pytest.raises(InvalidInput):
        await marketplace.create(1, "Star", "shiny", "mythic")
    assert await store.query_gifts() == []

@pytest.mark.asyncio
async def test_gift_ids_increase(marketplace):
    first = await make_gift(marketplace, name="One")
    second = await make_gift(marketplace, name="Two")
    assert second.id > first.id

@pytest.mark.asyncio
@pytest.mark.parametrize("price", ["-5", "abc", "0", "nan", "inf", ""])
async def test_list_rejects_invalid_price(marketplace, store, price):
    gift = await make_gift(marketplace)
    before = await snapshot(store, gift.id)
    with pytest.raises(InvalidPrice):
        await marketplace.list_for_sale(gift.id, 1, price)
    assert await snapshot(store, gift.id) == before

@pytest.mark.asyncio
async def test_list_accepts_price_text(marketplace):
    gift = await make_gift(marketplace)
    listed = await marketplace.list_for_sale(gift.id, 1, " 1,5 ")
    assert listed.price == 1.5

@pytest.mark.asyncio
async def test_list_by_non_owner_leaves_gift_unchanged(marketplace, store):
    gift = await make_gift(marketplace)
    before = await snapshot(store, gift.id)
    with pytest.raises(NotOwner):
        await marketplace.list_for_sale(gift.id, 2, 10)
    assert await snapshot(store, gift.id) == before

@pytest.mark.asyncio
async def test_list_missing_gift_is_not_owner(marketplace):
    with pytest.raises(NotOwner):
        await marketplace.list_for_sale(999, 1, 10)

@pytest.mark.asyncio
async def test_list_twice_is_already_for_sale(marketplace, store):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 4)
    with pytest.raises(AlreadyForSale):
        await marketplace.list_for_sale(gift.id, 1, 8)
    assert (await store.get_gift(gift.id)).price == 4

@pytest.mark.asyncio
async def test_delist(marketplace):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 4)
    delisted = await marketplace.delist(gift.id, 1)
    assert delisted.is_for_sale is False
    assert delisted.price is None

@pytest.mark.asyncio
async def test_delist_by_non_owner_leaves_gift_unchanged(marketplace, store):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 4)
    before = await snapshot(store, gift.id)
    with pytest.raises(NotOwner):
        await marketplace.delist(gift.id, 2)
    assert await snapshot(store, gift.id) == before

@pytest.mark.asyncio
async def test_delist_unlisted_gift(marketplace):
    gift = await make_gift(marketplace)
    with pytest.raises(NotAvailable):
        await marketplace.delist(gift.id, 1)

@pytest.mark.asyncio
async def test_purchase_unlisted_gift(marketplace):
    gift = await make_gift(marketplace)
    with pytest.raises(NotAvailable):
        await marketplace.purchase(gift.id, 2)
    with pytest.raises(NotAvailable):
        await marketplace.purchase(999, 2)

@pytest.mark.asyncio
async def test_self_purchase(marketplace, store, ledger):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 1)
    before = await snapshot(store, gift.id)
    with pytest.raises(SelfPurchase):
        await marketplace.purchase(gift.id, 1)
    assert await snapshot(store, gift.id) == before
    assert ledger.calls == []

@pytest.mark.asyncio
async def test_purchase_with_insufficient_funds(marketplace, store, ledger):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 2.5)
    await store.set_user_wallet(2, "wallet-2", "ru")
    ledger.balances["wallet-2"] = int(2.5 * TON) - 1
    before = await snapshot(store, gift.id)
    with pytest.raises(InsufficientFunds):
        await marketplace.purchase(gift.id, 2)
    assert await snapshot(store, gift.id) == before

@pytest.mark.asyncio
async def test_purchase_without_any_wallet(marketplace, store):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 1)
    with pytest.raises(InsufficientFunds):
        await marketplace.purchase(gift.id, 2)
    assert (await store.get_gift(gift.id)).owner_id == 1

@pytest.mark.asyncio
async def test_purchase_with_exact_balance(marketplace, store, ledger):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 2.5)
    await store.set_user_wallet(2, "wallet-2", "ru")
    ledger.balances["wallet-2"] = int(2.5 * TON)
    bought = await marketplace.purchase(gift.id, 2)
    assert bought.owner_id == 2

@pytest.mark.asyncio
async def test_no_double_sale(marketplace, store, session_factory):
    gift = await make_gift(marketplace)
    await marketplace.list_for_sale(gift.id, 1, 1)

    class RichLedger:
        async def get_balance(self, account):
            await asyncio.sleep(0)
            return 100 * TON

    async def attempt(buyer_id):
        async with session_factory() as session:
            buyer_store = CatalogStore(session)
            await buyer_store.set_user_wallet(buyer_id, f"wallet-{buyer_id}", "ru")
            service = MarketplaceService(buyer_store, RichLedger(), default_lang="ru")
            try:
                await service.purchase(gift.id, buyer_id)
                return "ok"
            except (AlreadySold, NotAvailable) as e:
                return type(e).__name__

    results = await asyncio.gather(attempt(2), attempt(3))
    assert results.count("ok") == 1

    final = await store.get_gift(gift.id)
    winner = 2 if results[0] == "ok" else 3
    assert final.owner_id == winner
    assert final.is_for_sale is False
    assert final.price is None

@pytest.mark.asyncio
async def test_views(marketplace):
    mine = await make_gift(marketplace, owner_id=1, name="Mine")
    other = await make_gift(marketplace, owner_id=2, name="Other")
    await marketplace.list_for_sale(other.id, 2, 3)

    assert [g.id for g in await marketplace.inventory(1)] == [mine.id]
    assert [g.id for g in await marketplace.listing()] == [other.id]

@pytest.mark.asyncio
async def test_sale_state_invariant_holds(marketplace, store):
    for i in range(3):
        gift = await make_gift(marketplace, name=f"Gift {i}")
        if i % 2 == 0:
            await marketplace.list_for_sale(gift.id, 1, i + 1)
    for gift in await store.query_gifts():
        assert gift.is_for_sale == (gift.price is not None and gift.price > 0)
        assert gift.owner_id is not None
