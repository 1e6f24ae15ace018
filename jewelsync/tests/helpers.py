"""Shared fixtures for sync tests."""

from datetime import datetime
from pathlib import Path

from django.utils import timezone
from openpyxl import Workbook

from jewelsync.models import Category, Customer, Item, Order, OrderItem, Store, User
from jewelsync.sync.schema import HEADERS_KEY_PREFIX, HEADER_SEPARATOR, METADATA_SHEET, SHEETS

USER_ID = "9999999999"
STORE_ID = "store-1"


class StaticIdentity:
    """IdentityProvider with fixed values."""

    def __init__(self, user_id=USER_ID, store_id=STORE_ID, user_mobile=None):
        self._user_id = user_id
        self._store_id = store_id
        self._user_mobile = user_id if user_mobile is None else user_mobile

    def current_user_id(self):
        return self._user_id

    def current_store_id(self):
        return self._store_id

    def user_mobile(self):
        return self._user_mobile


def seed_store(user_id=USER_ID, store_id=STORE_ID):
    """Create one of each core entity belonging to the given scope."""
    when = timezone.make_aware(datetime(2024, 1, 15, 10, 30))
    User.objects.create(user_id=user_id, name="Owner", mobile_no=user_id, role="admin")
    Store.objects.create(store_id=store_id, user_id=user_id, name="Main Store", invoice_no=42)
    Category.objects.create(cat_id="cat-1", cat_name="Gold", user_id=user_id, store_id=store_id)
    Item.objects.create(
        item_id="item-1",
        item_add_name="Ring",
        cat_id="cat-1",
        sub_cat_id="sub-1",
        user_id=user_id,
        store_id=store_id,
        gs_wt=10.5,
        add_date=when,
        modified_date=when,
    )
    Customer.objects.create(
        mobile_no="9000000000", name="Asha", user_id=user_id, store_id=store_id, add_date=when
    )
    Order.objects.create(
        order_id="order-1",
        customer_mobile="9000000000",
        user_id=user_id,
        store_id=store_id,
        order_date=when,
        total_amount=12345.5,
    )
    OrderItem.objects.create(order_item_id="oi-1", order_id="order-1", item_id="item-1", order_date=when)


def write_workbook(path, sheets, schema_version=None, headers=None):
    """
    Write a workbook from raw rows.

    Args:
        path: Output path
        sheets: Dict of sheet name to list of rows (first row is the header)
        schema_version: Written to a Metadata sheet when not None
        headers: Optional dict of sheet name to recorded header list
    """
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(list(row))

    if schema_version is not None:
        worksheet = workbook.create_sheet(title=METADATA_SHEET)
        worksheet.append(["key", "value"])
        worksheet.append(["schemaVersion", schema_version])
        for name, recorded in (headers or {}).items():
            worksheet.append([f"{HEADERS_KEY_PREFIX}{name}", HEADER_SEPARATOR.join(recorded)])

    workbook.save(path)
    return Path(path)


def sheet_rows(sheet_name, *records, headers=None):
    """Header row plus one row per record dict, in sheet column order."""
    headers = headers or SHEETS[sheet_name].headers
    return [list(headers)] + [[record.get(h) for h in headers] for record in records]
