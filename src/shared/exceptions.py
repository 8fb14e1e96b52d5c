"""Error taxonomy shared by every FoodSaver bounded context.

All failures raised by the Order Ledger and its collaborators derive from
``MarketplaceError`` so the HTTP layer can map them in one place.
"""


class MarketplaceError(Exception):
    """Base class for all domain-level failures."""


class ValidationError(MarketplaceError):
    """Input failed a precondition. The operation was never attempted.

    ``messages`` maps field names to lists of human readable messages, e.g.
    ``{"items": ["At least one item is required"]}``.
    """

    def __init__(self, messages: dict[str, list[str]]):
        self.messages = messages
        super().__init__(messages)


class NotFoundOrUnauthorized(MarketplaceError):
    """The record does not exist, or the requester may not see it.

    Both causes share one type so a non-owner learns nothing about existence.
    """


class PermissionDenied(MarketplaceError):
    """The identity's role does not allow the requested action."""


class InvalidState(MarketplaceError):
    """The record's current state does not allow the requested change."""


class InsufficientInventory(MarketplaceError):
    """A conditional quantity decrement affected zero rows."""

    def __init__(self, food_item_id: int, requested: int):
        self.food_item_id = food_item_id
        self.requested = requested
        super().__init__(f"Insufficient quantity available for food item {food_item_id} (requested {requested})")


class StorageFailure(MarketplaceError):
    """The underlying database failed. The transaction has been rolled back."""
