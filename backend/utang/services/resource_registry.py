# Overview: Closed registry of the REST resource kinds and their per-kind behavior.

"""
Resource Registry

The generic REST surface serves exactly eight resource kinds. Each kind is a
ResourceKind member, and everything kind-specific lives in one ResourceSpec
row of REGISTRY:

- model: SQLAlchemy model behind the kind
- access / store_path: how a row reaches the Store whose memberships decide
  visibility (consumed by access_service)
- text_fields / equality_filters: JSON field names accepted by `q` and by
  exact-match query parameters (consumed by query_service)
- includes: relations embedded in single-record responses
- policy / rules: create/update payload validation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..models import Customer, Item, Payment, Store, StoreMembership, User, UtangLineItem, UtangRecord
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_item,
    enforce_rules_line_item,
    enforce_rules_membership,
    enforce_rules_payment,
    enforce_rules_utang,
)
from .storage import StorageDelegate


class ResourceKind(str, Enum):
    STORES = "stores"
    STORE_USERS = "store_users"
    CUSTOMERS = "customers"
    ITEMS = "items"
    UTANG = "utang"
    UTANG_ITEMS = "utang_items"
    PAYMENTS = "payments"
    USER = "user"


class AccessRule(Enum):
    # Row reaches a Store through store_path; visible to that store's members
    STORE_MEMBER = "store_member"
    # Row carries user_id directly (store memberships)
    OWN_ROW = "own_row"
    # Row is the user itself
    SELF = "self"


@dataclass(frozen=True)
class ResourceSpec:
    model: type
    access: AccessRule
    store_path: tuple[str, ...] = ()
    text_fields: tuple[str, ...] = ()
    equality_filters: tuple[str, ...] = ()
    includes: dict[str, str] = field(default_factory=dict)
    create_policy: Optional[ModelValidationPolicy] = None
    update_policy: Optional[ModelValidationPolicy] = None
    rules: Optional[Callable[[dict], None]] = None


REGISTRY: dict[ResourceKind, ResourceSpec] = {
    ResourceKind.STORES: ResourceSpec(
        model=Store,
        access=AccessRule.STORE_MEMBER,
        text_fields=("name",),
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"name", "address"}),
            required_on_create=frozenset({"name"}),
        ),
        update_policy=ModelValidationPolicy(writable_fields=frozenset({"name", "address"})),
    ),
    ResourceKind.STORE_USERS: ResourceSpec(
        model=StoreMembership,
        access=AccessRule.OWN_ROW,
        equality_filters=("storeId", "userId", "role"),
        includes={"store": "store"},
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "userId", "role"}),
            required_on_create=frozenset({"storeId", "userId", "role"}),
        ),
        update_policy=ModelValidationPolicy(writable_fields=frozenset({"role"})),
        rules=enforce_rules_membership,
    ),
    ResourceKind.CUSTOMERS: ResourceSpec(
        model=Customer,
        access=AccessRule.STORE_MEMBER,
        store_path=("store",),
        text_fields=("name", "phone"),
        equality_filters=("storeId",),
        includes={"store": "store"},
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "name", "phone"}),
            required_on_create=frozenset({"storeId", "name"}),
        ),
        update_policy=ModelValidationPolicy(writable_fields=frozenset({"storeId", "name", "phone"})),
    ),
    ResourceKind.ITEMS: ResourceSpec(
        model=Item,
        access=AccessRule.STORE_MEMBER,
        store_path=("store",),
        text_fields=("name", "category"),
        equality_filters=("storeId", "category"),
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "name", "category", "price", "stock", "unit"}),
            required_on_create=frozenset({"storeId", "name", "price", "stock", "unit"}),
        ),
        update_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "name", "category", "price", "stock", "unit"}),
        ),
        rules=enforce_rules_item,
    ),
    ResourceKind.UTANG: ResourceSpec(
        model=UtangRecord,
        access=AccessRule.STORE_MEMBER,
        store_path=("store",),
        text_fields=("description",),
        equality_filters=("storeId", "customerId", "status"),
        includes={"customer": "customer", "items": "line_items", "payments": "payments"},
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "customerId", "description", "totalAmount", "status", "dueDate"}),
            required_on_create=frozenset({"storeId", "customerId", "totalAmount"}),
        ),
        update_policy=ModelValidationPolicy(
            writable_fields=frozenset({"storeId", "customerId", "description", "totalAmount", "status", "dueDate"}),
        ),
        rules=enforce_rules_utang,
    ),
    ResourceKind.UTANG_ITEMS: ResourceSpec(
        model=UtangLineItem,
        access=AccessRule.STORE_MEMBER,
        store_path=("utang", "store"),
        equality_filters=("utangId", "itemId"),
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset({"utangId", "itemId", "quantity", "unitPrice"}),
            required_on_create=frozenset({"utangId", "itemId", "quantity", "unitPrice"}),
        ),
        update_policy=ModelValidationPolicy(
            writable_fields=frozenset({"utangId", "itemId", "quantity", "unitPrice"}),
        ),
        rules=enforce_rules_line_item,
    ),
    ResourceKind.PAYMENTS: ResourceSpec(
        model=Payment,
        access=AccessRule.STORE_MEMBER,
        store_path=("utang", "store"),
        text_fields=("payerName", "paymentReference"),
        equality_filters=("utangId", "paymentMethod"),
        create_policy=ModelValidationPolicy(
            writable_fields=frozenset(
                {"utangId", "payerName", "amount", "paymentMethod", "paymentReference", "paymentDate"}
            ),
            required_on_create=frozenset({"utangId", "payerName", "amount", "paymentMethod"}),
        ),
        update_policy=ModelValidationPolicy(
            writable_fields=frozenset(
                {"utangId", "payerName", "amount", "paymentMethod", "paymentReference", "paymentDate"}
            ),
        ),
        rules=enforce_rules_payment,
    ),
    ResourceKind.USER: ResourceSpec(
        model=User,
        access=AccessRule.SELF,
        text_fields=("name", "email"),
        # Accounts are created through /api/auth/sign-up only
        create_policy=None,
        update_policy=ModelValidationPolicy(writable_fields=frozenset({"name", "image"})),
    ),
}

_ALLOWED_NAMES = frozenset(kind.value for kind in ResourceKind)


def is_allowed_resource(name: str) -> bool:
    return name in _ALLOWED_NAMES


def get_spec(kind: ResourceKind | str) -> ResourceSpec:
    """
    Look up a kind's spec.

    Only call this after is_allowed_resource() returned True; anything else
    is a programming error and raises LookupError.
    """
    try:
        return REGISTRY[ResourceKind(kind)]
    except (KeyError, ValueError):
        raise LookupError(f"Unregistered resource kind: {kind!r}") from None


def get_delegate(kind: ResourceKind | str) -> StorageDelegate:
    return StorageDelegate(get_spec(kind).model)
