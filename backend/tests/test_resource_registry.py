# Overview: Pytest coverage for the resource registry allow-list.

import pytest

from utang.models import Payment, Store, User
from utang.services.resource_registry import (
    REGISTRY,
    AccessRule,
    ResourceKind,
    get_delegate,
    get_spec,
    is_allowed_resource,
)


class TestAllowList:
    @pytest.mark.parametrize("name", [
        "stores", "store_users", "customers", "items", "utang", "utang_items", "payments", "user",
    ])
    def test_registered_names_are_allowed(self, name):
        assert is_allowed_resource(name)

    @pytest.mark.parametrize("name", ["users", "Stores", "session_tokens", "", "stores/"])
    def test_other_names_are_rejected(self, name):
        assert not is_allowed_resource(name)

    def test_every_kind_is_registered(self):
        assert set(REGISTRY) == set(ResourceKind)

    def test_get_spec_accepts_plain_names(self):
        assert get_spec("stores").model is Store

    def test_get_spec_rejects_unregistered_kind(self):
        with pytest.raises(LookupError):
            get_spec("session_tokens")


class TestSpecs:
    def test_payments_reach_store_through_utang(self):
        spec = get_spec(ResourceKind.PAYMENTS)
        assert spec.model is Payment
        assert spec.access is AccessRule.STORE_MEMBER
        assert spec.store_path == ("utang", "store")

    def test_user_kind_is_self_scoped_and_not_creatable(self):
        spec = get_spec(ResourceKind.USER)
        assert spec.model is User
        assert spec.access is AccessRule.SELF
        assert spec.create_policy is None

    def test_store_users_scoped_to_own_rows(self):
        assert get_spec(ResourceKind.STORE_USERS).access is AccessRule.OWN_ROW

    def test_utang_embeds_customer_items_and_payments(self):
        assert get_spec(ResourceKind.UTANG).includes == {
            "customer": "customer",
            "items": "line_items",
            "payments": "payments",
        }

    def test_password_hash_is_never_writable(self):
        for spec in REGISTRY.values():
            for policy in (spec.create_policy, spec.update_policy):
                if policy is not None:
                    assert "passwordHash" not in policy.writable_fields

    def test_delegate_is_bound_to_model(self):
        assert get_delegate(ResourceKind.STORES).model is Store
