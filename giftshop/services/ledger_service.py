"""
Balance lookups against the TON ledger (toncenter HTTP API v2).

Only the balance query is implemented. Purchases use it as a check-only
settlement gate; no value is moved between buyer and seller.
"""
import logging
from typing import Optional
import httpx
from giftshop.config import get_settings
from giftshop.exceptions import LedgerUnavailable

logger = logging.getLogger(__name__)

class TonLedger:
    def __init__(self, http: httpx.AsyncClient, api_key: str = ""):
        self.http = http
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings=None) -> "TonLedger":
        settings = settings or get_settings()
        http = httpx.AsyncClient(
            base_url=settings.TONCENTER_API_URL.rstrip("/") + "/",
            timeout=settings.LEDGER_TIMEOUT_SECONDS,
        )
        return cls(http, api_key=settings.TONCENTER_API_KEY)

    async def aclose(self):
        await self.http.aclose()

    async def get_balance(self, account: str) -> int:
        """Return the account balance in nanotons."""
        headers = {"X-API-Key": self.api_key} if self.api_key else {}
        try:
            response = await self.http.get("getAddressBalance", params={"address": account}, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Balance lookup failed for {account}: {e}")
            raise LedgerUnavailable(str(e)) from e

        if not payload.get("ok"):
            logger.error(f"Ledger rejected balance lookup for {account}: {payload.get('error')}")
            raise LedgerUnavailable(payload.get("error") or "ledger error")
        try:
            return int(payload["result"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerUnavailable(f"Malformed balance: {payload.get('result')!r}") from e

def resolve_account(wallet_address: Optional[str], settings=None) -> Optional[str]:
    """The buyer's linked wallet, falling back to the shop-wide wallet."""
    settings = settings or get_settings()
    return wallet_address or settings.TON_WALLET_ADDRESS or None
