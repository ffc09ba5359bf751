"""Credit Card Store"""

from decimal import Decimal

from finance_tracker.models.finance import CreditCard
from finance_tracker.models.mapping import CREDIT_CARD_MAPPING
from finance_tracker.stores.base import EntityStore
from finance_tracker.validation import CreditCardDraft, CreditCardUpdate


class CreditCardStore(EntityStore[CreditCard]):
    """
    Credit cards of the signed-in user.

    The card balance is entered by the user; card spending is not linked
    to transactions.
    """

    mapping = CREDIT_CARD_MAPPING
    draft_schema = CreditCardDraft
    update_schema = CreditCardUpdate

    @property
    def total_limit(self) -> Decimal:
        return sum((card.limit for card in self._items), Decimal("0"))

    @property
    def total_used(self) -> Decimal:
        return sum((card.current_balance for card in self._items), Decimal("0"))

    @property
    def total_available(self) -> Decimal:
        return self.total_limit - self.total_used
