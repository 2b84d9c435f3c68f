"""
Error taxonomy for the gift shop.

MarketplaceError subclasses are business-rule rejections: the bot catches them
and answers with the localized text named by ``message_key``.
CollaboratorError subclasses mean the store, the messaging gateway or the
ledger failed; the user only ever sees the generic failure notice for those.
"""


class GiftShopError(Exception):
    message_key = "error"


class MarketplaceError(GiftShopError):
    pass


class InvalidInput(MarketplaceError, ValueError):
    message_key = "invalid_input"


class InvalidPrice(InvalidInput):
    message_key = "invalid_price"


class UnknownAction(InvalidInput):
    message_key = "unknown_action"


class NotOwner(MarketplaceError):
    message_key = "not_owner"


class AlreadyForSale(MarketplaceError):
    message_key = "already_for_sale"


class NotAvailable(MarketplaceError):
    message_key = "not_available"


class SelfPurchase(MarketplaceError):
    message_key = "self_purchase"


class InsufficientFunds(MarketplaceError):
    message_key = "insufficient_funds"


class AlreadySold(MarketplaceError):
    message_key = "already_sold"


class CollaboratorError(GiftShopError):
    pass


class StoreUnavailable(CollaboratorError):
    pass


class GatewayUnavailable(CollaboratorError):
    pass


class LedgerUnavailable(CollaboratorError):
    pass


class LocalizationError(GiftShopError):
    pass
