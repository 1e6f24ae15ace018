"""Tests for per-entity conflict resolution."""

from django.test import SimpleTestCase

from jewelsync.sync.access import Identity
from jewelsync.sync.conflicts import (
    KNOWN_PROTECTION_GAPS,
    POLICIES,
    ConflictResolver,
    Resolution,
    RestoreMode,
)
from jewelsync.sync.schema import IMPORT_ORDER


class RestoreModeTests(SimpleTestCase):
    def test_parse(self):
        self.assertIs(RestoreMode.parse("MERGE"), RestoreMode.MERGE)
        self.assertIs(RestoreMode.parse(" replace "), RestoreMode.REPLACE)
        self.assertIs(RestoreMode.parse(RestoreMode.MERGE), RestoreMode.MERGE)

    def test_parse_unknown(self):
        with self.assertRaises(ValueError):
            RestoreMode.parse("overwrite")


class PolicyTableTests(SimpleTestCase):
    def test_every_imported_sheet_has_a_policy(self):
        self.assertEqual(set(POLICIES), {sheet for sheet, _ in IMPORT_ORDER})

    def test_protection_gaps(self):
        """Test that only users, their additional info and stores are protected."""
        protected = set(POLICIES) - KNOWN_PROTECTION_GAPS
        self.assertEqual(
            protected, {"UsersEntity", "UserAdditionalInfoEntity", "StoreEntity"}
        )

    def test_category_key_is_scoped_to_identity(self):
        identity = Identity(user_id="u1", store_id="s1")
        policy = POLICIES["CategoryEntity"]
        incoming = {"catName": "Gold", "userId": "other", "storeId": "elsewhere"}
        stored = {"catName": "Gold", "userId": "u1", "storeId": "s1"}

        self.assertEqual(policy.incoming_key(incoming, identity), policy.existing_key(stored))

    def test_subcategory_key_includes_category(self):
        identity = Identity(user_id="u1", store_id="s1")
        policy = POLICIES["SubCategoryEntity"]
        first = policy.incoming_key({"catId": "c1", "subCatName": "Rings"}, identity)
        second = policy.incoming_key({"catId": "c2", "subCatName": "Rings"}, identity)

        self.assertNotEqual(first, second)

    def test_customer_index_is_scoped(self):
        identity = Identity(user_id="u1", store_id="s1")
        policy = POLICIES["CustomerEntity"]

        self.assertTrue(policy.in_scope({"userId": "u1", "storeId": "s1"}, identity))
        self.assertFalse(policy.in_scope({"userId": "u2", "storeId": "s1"}, identity))
        self.assertTrue(POLICIES["FirmEntity"].in_scope({}, identity))


class ConflictResolverTests(SimpleTestCase):
    def setUp(self):
        self.resolver = ConflictResolver(Identity(user_id="9999999999", store_id="store-1"))

    def test_merge_skips_existing(self):
        policy = POLICIES["OrderEntity"]
        existing = {"orderId": "o1"}

        self.assertIs(
            self.resolver.resolve(RestoreMode.MERGE, policy, existing, {"orderId": "o1"}),
            Resolution.SKIP,
        )
        self.assertIs(
            self.resolver.resolve(RestoreMode.MERGE, policy, None, {"orderId": "o2"}),
            Resolution.INSERT,
        )

    def test_replace_writes_existing(self):
        policy = POLICIES["OrderEntity"]
        self.assertIs(
            self.resolver.resolve(RestoreMode.REPLACE, policy, {"orderId": "o1"}, {"orderId": "o1"}),
            Resolution.INSERT,
        )

    def test_replace_protects_current_user(self):
        policy = POLICIES["UsersEntity"]
        current = {"id": "9999999999", "mobileNo": "9999999999"}
        other = {"id": "7777777777", "mobileNo": "7777777777"}

        self.assertIs(self.resolver.resolve(RestoreMode.REPLACE, policy, None, current), Resolution.SKIP)
        self.assertIs(self.resolver.resolve(RestoreMode.REPLACE, policy, None, other), Resolution.INSERT)

    def test_replace_protects_current_store(self):
        policy = POLICIES["StoreEntity"]
        self.assertTrue(self.resolver.is_protected(policy, {"storeId": "store-1"}))
        self.assertFalse(self.resolver.is_protected(policy, {"storeId": "store-2"}))

    def test_no_identity_protects_nothing(self):
        resolver = ConflictResolver(Identity(user_id="", store_id=""))
        self.assertFalse(resolver.is_protected(POLICIES["StoreEntity"], {"storeId": ""}))

    def test_scoped_rewrites_only_scope_fields(self):
        record = {"storeId": "store-9", "userId": "someone", "name": "Branch"}

        scoped = self.resolver.scoped(POLICIES["StoreEntity"], record)

        self.assertEqual(scoped["userId"], "9999999999")
        self.assertEqual(scoped["storeId"], "store-9")
        self.assertEqual(record["userId"], "someone")
