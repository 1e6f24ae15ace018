"""
Collaborator interfaces consumed by the sync engine.

The engine never touches the ORM or the preferences file directly; it is
handed a DataAccess and an IdentityProvider. Records are flat dicts keyed
by sheet header name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

Record = dict[str, Any]


class EntityAccess(Protocol):
    """Read/write access to one entity table."""

    def get_all(self) -> list[Record]:
        ...

    def insert(self, record: Record) -> bool:
        ...

    def insert_or_update(self, record: Record) -> bool:
        ...


class DataAccess(Protocol):
    """Facade over all entity tables, addressed by sheet name."""

    def for_sheet(self, sheet_name: str) -> EntityAccess:
        ...


class IdentityProvider(Protocol):
    """Source of the current operating identity."""

    def current_user_id(self) -> str:
        ...

    def current_store_id(self) -> str:
        ...

    def user_mobile(self) -> str:
        ...


@dataclass(frozen=True)
class Identity:
    """Snapshot of the active user and store for one operation."""

    user_id: str
    store_id: str
    user_mobile: str = ""

    @classmethod
    def from_provider(cls, provider: IdentityProvider) -> "Identity":
        user_id = provider.current_user_id() or ""
        return cls(
            user_id=user_id,
            store_id=provider.current_store_id() or "",
            user_mobile=provider.user_mobile() or user_id,
        )
