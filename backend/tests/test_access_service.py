# Overview: Pytest coverage for store-membership access checks.

"""
Access Control Tests

SECURITY TESTS: a user reaches a row only through a membership on the row's
store, a missing user id never grants access, and denials are logged.
"""

import pytest

from utang.models import Payment, UtangLineItem, UtangRecord
from utang.services.access_service import (
    AccessDeniedError,
    require_store_member,
    verify_access,
)
from utang.services.resource_registry import ResourceKind
from conftest import add_member


@pytest.fixture
def utang_one(db_session, store_one, customer_one, item_one):
    record = UtangRecord(store_id=store_one.id, customer_id=customer_one.id, total_amount=50)
    record.line_items.append(UtangLineItem(item_id=item_one.id, quantity=2, unit_price=25))
    record.payments.append(Payment(payer_name="Juan", amount=20, payment_method="CASH"))
    db_session.add(record)
    db_session.commit()
    return record


class TestVerifyAccess:
    def test_member_can_reach_store(self, db_session, user_one, store_one):
        assert verify_access(ResourceKind.STORES, store_one.id, user_one.id)

    def test_non_member_denied(self, db_session, user_two, store_one):
        assert not verify_access(ResourceKind.STORES, store_one.id, user_two.id)

    def test_missing_user_denied(self, db_session, store_one):
        assert not verify_access(ResourceKind.STORES, store_one.id, None)

    def test_missing_record_denied(self, db_session, user_one):
        assert not verify_access(ResourceKind.CUSTOMERS, "no-such-id", user_one.id)

    def test_two_hop_kinds_follow_utang_to_store(self, db_session, user_one, user_two, utang_one):
        payment = utang_one.payments[0]
        line_item = utang_one.line_items[0]

        assert verify_access(ResourceKind.PAYMENTS, payment.id, user_one.id)
        assert verify_access(ResourceKind.UTANG_ITEMS, line_item.id, user_one.id)
        assert not verify_access(ResourceKind.PAYMENTS, payment.id, user_two.id)
        assert not verify_access(ResourceKind.UTANG_ITEMS, line_item.id, user_two.id)

    def test_staff_membership_grants_access(self, db_session, user_two, store_one, utang_one):
        add_member(db_session, store_one, user_two)
        assert verify_access(ResourceKind.UTANG, utang_one.id, user_two.id)

    def test_user_kind_is_self_only(self, db_session, user_one, user_two):
        assert verify_access(ResourceKind.USER, user_one.id, user_one.id)
        assert not verify_access(ResourceKind.USER, user_one.id, user_two.id)

    def test_store_users_own_row_only(self, db_session, user_one, user_two, store_one):
        own = store_one.memberships[0]
        assert verify_access(ResourceKind.STORE_USERS, own.id, user_one.id)
        assert not verify_access(ResourceKind.STORE_USERS, own.id, user_two.id)

    def test_denial_is_logged(self, db_session, user_two, store_one, caplog):
        verify_access(ResourceKind.STORES, store_one.id, user_two.id)
        assert any("Access denied" in r.getMessage() for r in caplog.records)


class TestRequireStoreMember:
    def test_owner_role_required(self, db_session, user_two, store_one):
        add_member(db_session, store_one, user_two, role="STAFF")

        assert require_store_member(store_one, user_two.id).role == "STAFF"
        with pytest.raises(AccessDeniedError):
            require_store_member(store_one, user_two.id, role="OWNER")

    def test_non_member_rejected(self, db_session, user_two, store_one):
        with pytest.raises(AccessDeniedError):
            require_store_member(store_one, user_two.id)
