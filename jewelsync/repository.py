"""
ORM-backed data access for the sync engine.

Each entity sheet maps to one model; records are dicts keyed by sheet
header, model fields are the snake_case form of those headers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError
from django.db import DatabaseError, models, transaction

from jewelsync import models as entities
from jewelsync.sync.schema import SHEETS, SheetSchema

if TYPE_CHECKING:
    from jewelsync.sync.access import Record

logger = logging.getLogger(__name__)

SHEET_MODELS: dict[str, type[models.Model]] = {
    "UsersEntity": entities.User,
    "UserAdditionalInfoEntity": entities.UserAdditionalInfo,
    "StoreEntity": entities.Store,
    "CategoryEntity": entities.Category,
    "SubCategoryEntity": entities.SubCategory,
    "ItemEntity": entities.Item,
    "CustomerEntity": entities.Customer,
    "CustomerKhataBookPlanEntity": entities.KhataBookPlan,
    "CustomerKhataBookEntity": entities.KhataBook,
    "CustomerTransactionEntity": entities.CustomerTransaction,
    "OrderEntity": entities.Order,
    "OrderItemEntity": entities.OrderItem,
    "ExchangeItemEntity": entities.ExchangeItem,
    "FirmEntity": entities.Firm,
    "PurchaseOrderEntity": entities.PurchaseOrder,
    "PurchaseOrderItemEntity": entities.PurchaseOrderItem,
    "MetalExchangeEntity": entities.MetalExchange,
}


class ModelRepository:
    """
    EntityAccess for a single model.

    Args:
        model: Django model class backing the sheet
        sheet: Sheet definition the records follow
    """

    def __init__(self, model: type[models.Model], sheet: SheetSchema):
        self.model = model
        self.sheet = sheet
        self.pk_field = sheet.column(sheet.primary_key).field

    def to_record(self, instance: models.Model) -> Record:
        return {column.header: getattr(instance, column.field) for column in self.sheet.columns}

    def get_all(self) -> list[Record]:
        return [self.to_record(obj) for obj in self.model.objects.order_by("pk")]

    def _primary_key(self, record: Record) -> str | None:
        pk = record.get(self.sheet.primary_key)
        if pk in (None, ""):
            logger.warning(f"{self.sheet.name}: refusing record with blank {self.sheet.primary_key}")
            return None
        return str(pk)

    def _values(self, record: Record) -> dict:
        return {
            column.field: record[column.header]
            for column in self.sheet.columns
            if column.header != self.sheet.primary_key and column.header in record
        }

    def insert(self, record: Record) -> bool:
        """
        Create a record, leaving any existing row with the same primary key untouched.

        Returns:
            True if created, False if the key is taken or the write failed
        """
        pk = self._primary_key(record)
        if pk is None:
            return False

        if self.model.objects.filter(**{self.pk_field: pk}).exists():
            logger.warning(f"{self.sheet.name} {pk}: primary key already exists")
            return False

        try:
            with transaction.atomic():
                self.model.objects.create(**{self.pk_field: pk}, **self._values(record))
        except (DatabaseError, ValidationError, ValueError) as e:
            logger.warning(f"{self.sheet.name} {pk}: insert failed: {e}")
            return False
        return True

    def insert_or_update(self, record: Record) -> bool:
        """
        Upsert a record on its primary key.

        Returns:
            True if written, False if the row was rejected
        """
        pk = self._primary_key(record)
        if pk is None:
            return False

        defaults = self._values(record)

        try:
            with transaction.atomic():
                self.model.objects.update_or_create(
                    **{self.pk_field: pk}, defaults=defaults
                )
        except (DatabaseError, ValidationError, ValueError) as e:
            logger.warning(f"{self.sheet.name} {pk}: write failed: {e}")
            return False
        return True

    def count(self) -> int:
        return self.model.objects.count()


class DatabaseAccess:
    """DataAccess over the local SQLite database."""

    def __init__(self, sheet_models: dict[str, type[models.Model]] | None = None):
        self.sheet_models = sheet_models or SHEET_MODELS
        self._repositories: dict[str, ModelRepository] = {}

    def for_sheet(self, sheet_name: str) -> ModelRepository:
        if sheet_name not in self._repositories:
            self._repositories[sheet_name] = ModelRepository(
                self.sheet_models[sheet_name], SHEETS[sheet_name]
            )
        return self._repositories[sheet_name]

    def counts(self) -> dict[str, int]:
        return {name: self.for_sheet(name).count() for name in self.sheet_models}
