"""
Storage Mappings

DESIGN DECISION: Client field names and storage column names differ for a
handful of fields (a credit card "limit" is stored as "card_limit", a
budget "limit" as "budget_limit", ...). Instead of renaming fields inline
at every call site, each entity has ONE explicit bidirectional mapping
table, applied at the gateway boundary.

to_storage() refuses fields it does not know about, so a typo in a payload
fails loudly instead of being sent to the backend.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from finance_tracker.models.finance import (
    Account,
    Budget,
    CreditCard,
    FinancialGoal,
    Transaction,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


class MappingError(ValueError):
    """A payload field has no storage column."""
    pass


class EntityMapping(Generic[ModelT]):
    """
    Bidirectional field mapping for one entity kind.

    Args:
        model: Record model built from storage rows
        resource: REST resource / table name
        fields: client field name -> storage column name
        order_by: server-side ordering used when loading the collection
        label: human-readable singular name used in messages
    """

    def __init__(
        self,
        model: type[ModelT],
        resource: str,
        fields: dict[str, str],
        order_by: str,
        label: str,
    ):
        self.model = model
        self.resource = resource
        self.order_by = order_by
        self.label = label
        self._to_storage = dict(fields)
        self._from_storage = {column: name for name, column in fields.items()}
        if len(self._from_storage) != len(self._to_storage):
            raise MappingError(f"Duplicate storage column in {resource} mapping")

    @property
    def client_fields(self) -> list[str]:
        return list(self._to_storage)

    def column_for(self, field: str) -> str:
        try:
            return self._to_storage[field]
        except KeyError:
            raise MappingError(
                f"Field '{field}' is not mapped for {self.resource}"
            ) from None

    def to_storage(self, data: dict[str, Any]) -> dict[str, Any]:
        """Rename client fields to storage columns."""
        return {self.column_for(field): value for field, value in data.items()}

    def from_storage(self, row: dict[str, Any]) -> ModelT:
        """
        Build a record from a storage row.

        Unmapped columns (user_id, legacy denormalized columns) are ignored.
        """
        data = {
            self._from_storage[column]: value
            for column, value in row.items()
            if column in self._from_storage
        }
        return self.model.model_validate(data)

    def partial_to_storage(self, changes: BaseModel) -> dict[str, Any]:
        """Serialize only the fields explicitly set on a partial update."""
        data = changes.model_dump(mode="json", exclude_unset=True)
        return self.to_storage(data)


ACCOUNT_MAPPING: EntityMapping[Account] = EntityMapping(
    model=Account,
    resource="accounts",
    fields={
        "id": "id",
        "name": "name",
        "bank": "bank",
        "type": "type",
        "balance": "balance",
        "color": "color",
        "created_at": "created_at",
    },
    order_by="created_at.desc",
    label="account",
)

TRANSACTION_MAPPING: EntityMapping[Transaction] = EntityMapping(
    model=Transaction,
    resource="transactions",
    fields={
        "id": "id",
        "description": "description",
        "amount": "amount",
        "type": "type",
        "category": "category",
        "account_id": "account_id",
        "date": "date",
        "recurring": "recurring",
        "tags": "tags",
    },
    order_by="date.desc",
    label="transaction",
)

CREDIT_CARD_MAPPING: EntityMapping[CreditCard] = EntityMapping(
    model=CreditCard,
    resource="credit_cards",
    fields={
        "id": "id",
        "name": "name",
        "bank": "bank",
        "limit": "card_limit",
        "current_balance": "current_balance",
        "due_day": "due_date",
        "closing_day": "closing_date",
        "color": "color",
        "created_at": "created_at",
    },
    order_by="created_at.desc",
    label="credit card",
)

GOAL_MAPPING: EntityMapping[FinancialGoal] = EntityMapping(
    model=FinancialGoal,
    resource="financial_goals",
    fields={
        "id": "id",
        "title": "title",
        "description": "description",
        "target_amount": "target_amount",
        "current_amount": "current_amount",
        "deadline": "deadline",
        "category": "category",
        "color": "color",
        "completed": "completed",
        "created_at": "created_at",
    },
    order_by="created_at.desc",
    label="goal",
)

BUDGET_MAPPING: EntityMapping[Budget] = EntityMapping(
    model=Budget,
    resource="budgets",
    fields={
        "id": "id",
        "category": "category",
        "limit": "budget_limit",
        "period": "period",
        "color": "color",
        "alerts": "alerts",
        "created_at": "created_at",
    },
    order_by="created_at.desc",
    label="budget",
)
