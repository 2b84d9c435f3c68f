from typing import Optional
from giftshop.services.catalog_store import CatalogStore
from giftshop.services.localization import Localizer
from giftshop.utils.validators import validate_wallet_address
from giftshop.exceptions import InvalidInput

class UserService:
    def __init__(self, store: CatalogStore, localizer: Localizer):
        self.store = store
        self.localizer = localizer

    async def get_lang(self, user_id: int) -> str:
        lang = await self.store.get_user_lang(user_id)
        if lang in self.localizer.languages:
            return lang
        return self.localizer.default_lang

    async def set_lang(self, user_id: int, lang: str) -> str:
        if lang not in self.localizer.languages:
            raise InvalidInput(f"Unsupported language: {lang!r}")
        await self.store.upsert_user_lang(user_id, lang)
        return lang

    async def get_wallet(self, user_id: int) -> Optional[str]:
        return await self.store.get_user_wallet(user_id)

    async def link_wallet(self, user_id: int, address: str) -> str:
        address = validate_wallet_address(address)
        await self.store.set_user_wallet(user_id, address, self.localizer.default_lang)
        return address
