import logging
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from giftshop.models.user import User
from giftshop.models.gift import Gift
from giftshop.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

def _column_filters(filters: Dict[str, Any]):
    clauses = []
    for key, value in filters.items():
        column = getattr(Gift, key)
        clauses.append(column.is_(None) if value is None else column == value)
    return clauses

class CatalogStore:
    """
    CRUD access to users and gifts.

    Writes that depend on the current row state go through
    conditional_update_gift: the precondition is part of the UPDATE's WHERE
    clause and the affected row count is the only success signal.
    Any SQLAlchemy failure is rolled back and re-raised as StoreUnavailable.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Store operation {operation} failed: {e}")
            await self.db.rollback()
            raise StoreUnavailable(operation) from e

    async def get_user_lang(self, user_id: int) -> Optional[str]:
        async with self._guard("get_user_lang"):
            result = await self.db.execute(select(User.lang).filter(User.id == user_id))
            return result.scalars().first()

    async def upsert_user_lang(self, user_id: int, lang: str) -> User:
        async with self._guard("upsert_user_lang"):
            user = await self.db.get(User, user_id)
            if user:
                user.lang = lang
            else:
                user = User(id=user_id, lang=lang)
                self.db.add(user)
            await self.db.commit()
            return user

    async def ensure_user(self, user_id: int, default_lang: str, commit: bool = True) -> User:
        async with self._guard("ensure_user"):
            user = await self.db.get(User, user_id)
            if not user:
                user = User(id=user_id, lang=default_lang)
                self.db.add(user)
                if commit:
                    await self.db.commit()
                else:
                    await self.db.flush()
            return user

    async def get_user_wallet(self, user_id: int) -> Optional[str]:
        async with self._guard("get_user_wallet"):
            result = await self.db.execute(select(User.wallet_address).filter(User.id == user_id))
            return result.scalars().first()

    async def set_user_wallet(self, user_id: int, address: str, default_lang: str) -> User:
        async with self._guard("set_user_wallet"):
            user = await self.db.get(User, user_id)
            if not user:
                user = User(id=user_id, lang=default_lang)
                self.db.add(user)
            user.wallet_address = address
            await self.db.commit()
            return user

    async def insert_gift(self, fields: Dict[str, Any], commit: bool = True) -> Gift:
        async with self._guard("insert_gift"):
            gift = Gift(**fields)
            self.db.add(gift)
            if commit:
                await self.db.commit()
                await self.db.refresh(gift)
            else:
                await self.db.flush()
            return gift

    async def get_gift(self, gift_id: int) -> Optional[Gift]:
        async with self._guard("get_gift"):
            result = await self.db.execute(
                select(Gift).filter(Gift.id == gift_id).execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def query_gifts(self, **filters) -> List[Gift]:
        async with self._guard("query_gifts"):
            result = await self.db.execute(
                select(Gift)
                .filter(*_column_filters(filters))
                .order_by(Gift.id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().all()

    async def conditional_update_gift(
        self, gift_id: int, predicate: Dict[str, Any], changes: Dict[str, Any], commit: bool = True
    ) -> int:
        async with self._guard("conditional_update_gift"):
            stmt = (
                update(Gift)
                .where(Gift.id == gift_id, *_column_filters(predicate))
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            if commit:
                await self.db.commit()
            return result.rowcount

    async def commit(self):
        async with self._guard("commit"):
            await self.db.commit()

    async def rollback(self):
        await self.db.rollback()
