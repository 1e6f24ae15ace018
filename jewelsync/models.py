"""
Local store entity tables.

Primary keys are the natural string ids carried in the workbook. Cross-table
references (customer mobile, order id, category id...) are plain columns:
imports may arrive out of order, so referential integrity is advisory.
"""

from django.db import models
from django.utils import timezone

from jewelsync.sync.models import OperationKind, OperationStatus, SyncOperation  # noqa: F401


def _text(**kwargs):
    return models.CharField(max_length=255, blank=True, default="", **kwargs)


def _id(**kwargs):
    return models.CharField(max_length=64, blank=True, default="", db_index=True, **kwargs)


class User(models.Model):
    user_id = models.CharField(max_length=64, primary_key=True)
    name = _text()
    email = _text()
    mobile_no = models.CharField(max_length=32, unique=True)
    token = models.TextField(blank=True, default="")
    pin = _text()
    role = _text()
    last_updated = models.BigIntegerField(default=0)

    def __str__(self):
        return f"{self.name} ({self.mobile_no})"


class UserAdditionalInfo(models.Model):
    user_id = models.CharField(max_length=64, primary_key=True)
    aadhaar_number = _text()
    address = models.TextField(blank=True, default="")
    emergency_contact_person = _text()
    emergency_contact_number = _text()
    government_id_number = _text()
    government_id_type = _text()
    date_of_birth = _text()
    blood_group = _text()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name_plural = "user additional info"


class Store(models.Model):
    store_id = models.CharField(max_length=64, primary_key=True)
    user_id = _id()
    proprietor = _text()
    name = _text()
    email = _text()
    phone = _text()
    address = models.TextField(blank=True, default="")
    registration_no = _text()
    gstin_no = _text()
    pan_no = _text()
    image = models.TextField(blank=True, default="")
    invoice_no = models.BigIntegerField(default=0)
    upi_id = _text()
    last_updated = models.BigIntegerField(default=0)

    def __str__(self):
        return self.name or self.store_id


class Category(models.Model):
    cat_id = models.CharField(max_length=64, primary_key=True)
    cat_name = _text()
    gs_wt = models.FloatField(default=0)
    fn_wt = models.FloatField(default=0)
    user_id = _id()
    store_id = _id()

    class Meta:
        verbose_name_plural = "categories"
        indexes = [models.Index(fields=["user_id", "store_id", "cat_name"])]


class SubCategory(models.Model):
    sub_cat_id = models.CharField(max_length=64, primary_key=True)
    cat_id = _id()
    user_id = _id()
    store_id = _id()
    cat_name = _text()
    sub_cat_name = _text()
    quantity = models.IntegerField(default=0)
    gs_wt = models.FloatField(default=0)
    fn_wt = models.FloatField(default=0)

    class Meta:
        verbose_name_plural = "subcategories"


class Item(models.Model):
    item_id = models.CharField(max_length=64, primary_key=True)
    item_add_name = _text()
    cat_id = _id()
    user_id = _id()
    store_id = _id()
    cat_name = _text()
    sub_cat_id = _id()
    sub_cat_name = _text()
    entry_type = _text()
    quantity = models.IntegerField(default=0)
    gs_wt = models.FloatField(default=0)
    nt_wt = models.FloatField(default=0)
    fn_wt = models.FloatField(default=0)
    purity = _text()
    crg_type = _text()
    crg = models.FloatField(default=0)
    comp_des = _text()
    comp_crg = models.FloatField(default=0)
    cgst = models.FloatField(default=0)
    sgst = models.FloatField(default=0)
    igst = models.FloatField(default=0)
    huid = _text()
    unit = _text()
    add_des_key = _text()
    add_des_value = _text()
    add_date = models.DateTimeField(default=timezone.now)
    modified_date = models.DateTimeField(default=timezone.now)
    seller_firm_id = _id()
    purchase_order_id = _id()
    purchase_item_id = _id()


class Customer(models.Model):
    mobile_no = models.CharField(max_length=32, primary_key=True)
    name = _text()
    address = models.TextField(blank=True, default="")
    gstin_pan = _text()
    add_date = models.DateTimeField(default=timezone.now)
    last_modified_date = models.DateTimeField(default=timezone.now)
    total_item_bought = models.IntegerField(default=0)
    total_amount = models.FloatField(default=0)
    notes = models.TextField(blank=True, default="")
    user_id = _id()
    store_id = _id()

    class Meta:
        indexes = [models.Index(fields=["user_id", "store_id"])]

    def __str__(self):
        return f"{self.name} ({self.mobile_no})"


class KhataBookPlan(models.Model):
    plan_id = models.CharField(max_length=64, primary_key=True)
    name = _text()
    pay_months = models.IntegerField(default=0)
    benefit_months = models.IntegerField(default=0)
    description = models.TextField(blank=True, default="")
    benefit_percentage = models.FloatField(default=0)
    user_id = _id()
    store_id = _id()
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)


class KhataBook(models.Model):
    khata_book_id = models.CharField(max_length=64, primary_key=True)
    customer_mobile = _id()
    plan_name = _text()
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(default=timezone.now)
    monthly_amount = models.FloatField(default=0)
    total_months = models.IntegerField(default=0)
    total_amount = models.FloatField(default=0)
    status = _text()
    notes = models.TextField(blank=True, default="")
    user_id = _id()
    store_id = _id()


class CustomerTransaction(models.Model):
    transaction_id = models.CharField(max_length=64, primary_key=True)
    customer_mobile = _id()
    transaction_date = models.DateTimeField(default=timezone.now)
    amount = models.FloatField(default=0)
    transaction_type = _text()
    category = _text()
    description = models.TextField(blank=True, default="")
    reference_number = _text()
    payment_method = _text()
    khata_book_id = _id()
    month_number = models.IntegerField(default=0)
    notes = models.TextField(blank=True, default="")
    user_id = _id()
    store_id = _id()


class Order(models.Model):
    order_id = models.CharField(max_length=64, primary_key=True)
    customer_mobile = _id()
    store_id = _id()
    user_id = _id()
    order_date = models.DateTimeField(default=timezone.now)
    total_amount = models.FloatField(default=0)
    total_tax = models.FloatField(default=0)
    total_charge = models.FloatField(default=0)
    discount = models.FloatField(default=0)
    note = models.TextField(blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["user_id", "store_id"])]


class OrderItem(models.Model):
    order_item_id = models.CharField(max_length=64, primary_key=True)
    order_id = _id()
    order_date = models.DateTimeField(default=timezone.now)
    item_id = _id()
    customer_mobile = _id()
    cat_id = _id()
    cat_name = _text()
    item_add_name = _text()
    sub_cat_id = _id()
    sub_cat_name = _text()
    entry_type = _text()
    quantity = models.IntegerField(default=0)
    gs_wt = models.FloatField(default=0)
    nt_wt = models.FloatField(default=0)
    fn_wt = models.FloatField(default=0)
    fn_metal_price = models.FloatField(default=0)
    purity = _text()
    crg_type = _text()
    crg = models.FloatField(default=0)
    comp_des = _text()
    comp_crg = models.FloatField(default=0)
    cgst = models.FloatField(default=0)
    sgst = models.FloatField(default=0)
    igst = models.FloatField(default=0)
    huid = _text()
    add_des_key = _text()
    add_des_value = _text()
    price = models.FloatField(default=0)
    charge = models.FloatField(default=0)
    tax = models.FloatField(default=0)
    seller_firm_id = _id()
    purchase_order_id = _id()
    purchase_item_id = _id()


class ExchangeItem(models.Model):
    exchange_item_id = models.CharField(max_length=64, primary_key=True)
    order_id = _id()
    order_date = models.DateTimeField(default=timezone.now)
    customer_mobile = _id()
    metal_type = _text()
    purity = _text()
    gross_weight = models.FloatField(default=0)
    fine_weight = models.FloatField(default=0)
    price = models.FloatField(default=0)
    is_exchanged_by_metal = models.BooleanField(default=False)
    exchange_value = models.FloatField(default=0)
    add_date = models.DateTimeField(default=timezone.now)


class Firm(models.Model):
    firm_id = models.CharField(max_length=64, primary_key=True)
    firm_name = _text()
    firm_mobile_number = _text()
    gst_number = _text()
    address = models.TextField(blank=True, default="")

    def __str__(self):
        return self.firm_name


class PurchaseOrder(models.Model):
    purchase_order_id = models.CharField(max_length=64, primary_key=True)
    seller_id = _id()
    bill_no = _text()
    bill_date = _text()
    entry_date = _text()
    extra_charge_description = _text()
    extra_charge = models.FloatField(default=0)
    total_final_weight = models.FloatField(default=0)
    total_final_amount = models.FloatField(default=0)
    notes = models.TextField(blank=True, default="")
    cgst_percent = models.FloatField(default=0)
    sgst_percent = models.FloatField(default=0)
    igst_percent = models.FloatField(default=0)


class PurchaseOrderItem(models.Model):
    purchase_item_id = models.CharField(max_length=64, primary_key=True)
    purchase_order_id = _id()
    cat_id = _id()
    cat_name = _text()
    sub_cat_id = _id()
    sub_cat_name = _text()
    gs_wt = models.FloatField(default=0)
    purity = _text()
    nt_wt = models.FloatField(default=0)
    fn_wt = models.FloatField(default=0)
    fn_rate = models.FloatField(default=0)
    wastage_percent = models.FloatField(default=0)


class MetalExchange(models.Model):
    exchange_id = models.CharField(max_length=64, primary_key=True)
    purchase_order_id = _id()
    cat_id = _id()
    cat_name = _text()
    sub_cat_id = _id()
    sub_cat_name = _text()
    fn_weight = models.FloatField(default=0)
