"""
Record-level conflict resolution for workbook import.

Each entity has its own natural key, scoping rules and (for users and
stores) a protected record that REPLACE must never overwrite. These rules
are business decisions, so they are spelled out per entity in ``POLICIES``
rather than derived from a single key strategy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from jewelsync.sync.access import Identity, Record

logger = logging.getLogger(__name__)


class RestoreMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"

    @classmethod
    def parse(cls, value: "str | RestoreMode") -> "RestoreMode":
        if isinstance(value, RestoreMode):
            return value
        return cls(str(value).strip().lower())


class Resolution(Enum):
    INSERT = "insert"
    SKIP = "skip"


class Protection(Enum):
    NONE = "none"
    CURRENT_USER = "current_user"
    CURRENT_STORE = "current_store"


@dataclass(frozen=True)
class EntityPolicy:
    """
    How one entity is deduplicated and scoped on import.

    Attributes:
        sheet: Sheet name the policy applies to
        incoming_key: Natural key of a parsed row, computed against the
            current identity (the row is stored under that identity)
        existing_key: Natural key of a record already in the local store
        scope_fields: Fields rewritten to the current user/store id
        scoped_index: Only index local records belonging to the current
            user and store
        protection: Which record REPLACE must leave alone
        protected_field: Field compared against the protected identity value
        required_field: Rows with this field blank count as failed
    """

    sheet: str
    incoming_key: Callable[[Record, Identity], str]
    existing_key: Callable[[Record], str]
    scope_fields: tuple[str, ...] = ()
    scoped_index: bool = False
    protection: Protection = Protection.NONE
    protected_field: str = ""
    required_field: str = ""

    def in_scope(self, record: Record, identity: Identity) -> bool:
        if not self.scoped_index:
            return True
        return (
            str(record.get("userId", "")) == identity.user_id
            and str(record.get("storeId", "")) == identity.store_id
        )


def _field(name: str) -> Callable[[Record], str]:
    return lambda record: str(record.get(name, ""))


def _incoming_field(name: str) -> Callable[[Record, Identity], str]:
    return lambda record, identity: str(record.get(name, ""))


def _scoped_name(name: str) -> Callable[[Record, Identity], str]:
    return lambda record, identity: f"{identity.user_id}_{identity.store_id}_{record.get(name, '')}"


def _stored_scoped_name(name: str) -> Callable[[Record], str]:
    return lambda record: f"{record.get('userId', '')}_{record.get('storeId', '')}_{record.get(name, '')}"


_USER_STORE = ("userId", "storeId")

POLICIES: dict[str, EntityPolicy] = {
    policy.sheet: policy
    for policy in (
        EntityPolicy(
            sheet="UsersEntity",
            incoming_key=_incoming_field("mobileNo"),
            existing_key=_field("mobileNo"),
            protection=Protection.CURRENT_USER,
            protected_field="mobileNo",
        ),
        EntityPolicy(
            sheet="UserAdditionalInfoEntity",
            incoming_key=_incoming_field("userId"),
            existing_key=_field("userId"),
            protection=Protection.CURRENT_USER,
            protected_field="userId",
            required_field="userId",
        ),
        EntityPolicy(
            sheet="StoreEntity",
            incoming_key=_incoming_field("storeId"),
            existing_key=_field("storeId"),
            scope_fields=("userId",),
            protection=Protection.CURRENT_STORE,
            protected_field="storeId",
        ),
        EntityPolicy(
            sheet="CategoryEntity",
            incoming_key=_scoped_name("catName"),
            existing_key=_stored_scoped_name("catName"),
            scope_fields=_USER_STORE,
        ),
        EntityPolicy(
            sheet="SubCategoryEntity",
            incoming_key=lambda r, i: f"{r.get('catId', '')}_{i.user_id}_{i.store_id}_{r.get('subCatName', '')}",
            existing_key=lambda r: (
                f"{r.get('catId', '')}_{r.get('userId', '')}_{r.get('storeId', '')}_{r.get('subCatName', '')}"
            ),
            scope_fields=_USER_STORE,
        ),
        EntityPolicy(
            sheet="ItemEntity",
            incoming_key=_scoped_name("itemAddName"),
            existing_key=_stored_scoped_name("itemAddName"),
            scope_fields=_USER_STORE,
        ),
        EntityPolicy(
            sheet="CustomerEntity",
            incoming_key=_incoming_field("mobileNo"),
            existing_key=_field("mobileNo"),
            scope_fields=_USER_STORE,
            scoped_index=True,
        ),
        EntityPolicy(
            sheet="CustomerKhataBookPlanEntity",
            incoming_key=_incoming_field("planId"),
            existing_key=_field("planId"),
            scope_fields=_USER_STORE,
            scoped_index=True,
            required_field="planId",
        ),
        EntityPolicy(
            sheet="CustomerKhataBookEntity",
            incoming_key=_incoming_field("khataBookId"),
            existing_key=_field("khataBookId"),
            scope_fields=_USER_STORE,
            scoped_index=True,
        ),
        EntityPolicy(
            sheet="CustomerTransactionEntity",
            incoming_key=_incoming_field("transactionId"),
            existing_key=_field("transactionId"),
            scope_fields=_USER_STORE,
            scoped_index=True,
        ),
        EntityPolicy(
            sheet="OrderEntity",
            incoming_key=_incoming_field("orderId"),
            existing_key=_field("orderId"),
            scope_fields=_USER_STORE,
            scoped_index=True,
        ),
        EntityPolicy(
            sheet="OrderItemEntity",
            incoming_key=_incoming_field("orderItemId"),
            existing_key=_field("orderItemId"),
        ),
        EntityPolicy(
            sheet="ExchangeItemEntity",
            incoming_key=_incoming_field("exchangeItemId"),
            existing_key=_field("exchangeItemId"),
        ),
        EntityPolicy(
            sheet="FirmEntity",
            incoming_key=_incoming_field("firmName"),
            existing_key=_field("firmName"),
        ),
        EntityPolicy(
            sheet="PurchaseOrderEntity",
            incoming_key=_incoming_field("purchaseOrderId"),
            existing_key=_field("purchaseOrderId"),
        ),
        EntityPolicy(
            sheet="PurchaseOrderItemEntity",
            incoming_key=_incoming_field("purchaseItemId"),
            existing_key=_field("purchaseItemId"),
        ),
        EntityPolicy(
            sheet="MetalExchangeEntity",
            incoming_key=_incoming_field("exchangeId"),
            existing_key=_field("exchangeId"),
        ),
    )
}

# Entities with no protected record under REPLACE. Rows are written
# unconditionally, including rows belonging to the active user/store.
KNOWN_PROTECTION_GAPS = frozenset(
    sheet for sheet, policy in POLICIES.items() if policy.protection is Protection.NONE
)


class ConflictResolver:
    """
    Decides per row whether an incoming record is written.

    Holds the operating identity for the import; keeps no state across rows.
    """

    def __init__(self, identity: Identity):
        self.identity = identity

    def scoped(self, policy: EntityPolicy, record: Record) -> Record:
        """Return a copy of ``record`` with scoping fields set to the current identity."""
        values = {"userId": self.identity.user_id, "storeId": self.identity.store_id}
        rewritten = dict(record)
        for name in policy.scope_fields:
            rewritten[name] = values[name]
        return rewritten

    def is_protected(self, policy: EntityPolicy, record: Record) -> bool:
        if policy.protection is Protection.NONE:
            return False
        value = str(record.get(policy.protected_field, ""))
        if policy.protection is Protection.CURRENT_USER:
            return bool(self.identity.user_id) and value == self.identity.user_id
        return bool(self.identity.store_id) and value == self.identity.store_id

    def resolve(
        self,
        mode: RestoreMode,
        policy: EntityPolicy,
        existing: Record | None,
        incoming: Record,
    ) -> Resolution:
        """
        Decide whether ``incoming`` is written.

        Args:
            mode: MERGE or REPLACE
            policy: Policy for the entity being imported
            existing: Local record sharing the incoming natural key, if any
            incoming: Parsed row

        Returns:
            Resolution.INSERT or Resolution.SKIP
        """
        if mode is RestoreMode.MERGE:
            return Resolution.SKIP if existing is not None else Resolution.INSERT

        if self.is_protected(policy, incoming):
            logger.debug(f"Skipping protected {policy.sheet} record {policy.protected_field}")
            return Resolution.SKIP
        return Resolution.INSERT
