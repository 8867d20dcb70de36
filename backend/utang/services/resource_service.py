# Overview: Generic list/get/create/update/delete over the registered resource kinds.

"""
Resource CRUD Service

Composes the registry, query translator and access control into the
operations behind /api/<resource> and /api/<resource>/<id>.

- list_resources: access predicate AND-ed into every list query
- get_resource: fetch with includes, then point-check access
- create_resource: per-kind creators; parents are loaded and attached as
  relationships, never written as bare foreign-key scalars
- update_resource / delete_resource: callers run verify_access first; the
  mutation itself still raises RecordNotFoundError if the row vanished

Composite writes (store + OWNER membership, utang + line items + payments)
go through one StorageDelegate.create call, i.e. one transaction.
"""

from __future__ import annotations

from typing import Any, Mapping

from flask import current_app

from ..models import Customer, Item, Store, User, UtangLineItem, UtangRecord, Payment
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_line_item,
    enforce_rules_payment,
    validate_payload,
)
from .access_service import (
    AccessDeniedError,
    AuthenticationRequiredError,
    access_includes,
    record_visible_to,
    require_store_member,
)
from .query_service import build_list_query
from .resource_registry import ResourceKind, ResourceSpec, get_delegate, get_spec
from .storage import RecordNotFoundError

# Nested children inside POST /api/utang carry no utangId of their own
LINE_ITEM_CHILD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"itemId", "quantity", "unitPrice"}),
    required_on_create=frozenset({"itemId", "quantity", "unitPrice"}),
)
PAYMENT_CHILD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"payerName", "amount", "paymentMethod", "paymentReference", "paymentDate"}),
    required_on_create=frozenset({"payerName", "amount", "paymentMethod"}),
)


def serialize(spec: ResourceSpec, record, *, with_includes: bool = False) -> dict:
    data = record.to_dict()
    if with_includes:
        for key, attr in spec.includes.items():
            related = getattr(record, attr)
            if isinstance(related, list):
                data[key] = [r.to_dict() for r in related]
            else:
                data[key] = related.to_dict() if related is not None else None
    return data


def _validated(spec: ResourceSpec, payload: Any, *, partial: bool) -> dict:
    policy = spec.update_policy if partial else spec.create_policy
    patch = validate_payload(model=spec.model, payload=payload, policy=policy, partial=partial)
    if spec.rules:
        spec.rules(patch)
    return patch


# =============================================================================
# PARENT LOOKUPS
# =============================================================================

def _load_store(store_id: str) -> Store:
    store = get_delegate(ResourceKind.STORES).find_unique(store_id, include=("memberships",))
    if store is None:
        raise RecordNotFoundError("Store not found")
    return store


def _load_utang(utang_id: str) -> UtangRecord:
    record = get_delegate(ResourceKind.UTANG).find_unique(utang_id, include=("store.memberships",))
    if record is None:
        raise RecordNotFoundError("Utang not found")
    return record


def _load_user(user_id: str) -> User:
    user = get_delegate(ResourceKind.USER).find_unique(user_id)
    if user is None:
        raise RecordNotFoundError("User not found")
    return user


def _store_customer(store_id: str, customer_id: str) -> Customer:
    customer = get_delegate(ResourceKind.CUSTOMERS).find_unique(customer_id)
    if customer is None or customer.store_id != store_id:
        raise ValidationError("customerId does not refer to a customer of this store")
    return customer


def _store_item(store_id: str, item_id: str) -> Item:
    item = get_delegate(ResourceKind.ITEMS).find_unique(item_id)
    if item is None or item.store_id != store_id:
        raise ValidationError("itemId does not refer to an item of this store")
    return item


def _child_rows(value: Any, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(row, dict) for row in value):
        raise ValidationError(f"{name} must be an array of objects")
    return value


# =============================================================================
# LIST / GET
# =============================================================================

def list_resources(kind: ResourceKind, args: Mapping[str, str], user_id: str | None) -> tuple[list[dict], int]:
    """
    Return (page, total) for the rows of `kind` visible to user_id.

    Fails closed: without a user id there is no unscoped fallback.
    """
    if user_id is None:
        raise AuthenticationRequiredError("Authentication required")

    query = build_list_query(kind, args, user_id)
    delegate = get_delegate(kind)

    # Count and page are two independent reads; the total may drift from the
    # page under concurrent writes.
    total = delegate.count(query.where)
    records = delegate.find_many(query.where, skip=query.skip, take=query.take, order_by=query.order_by)
    return [r.to_dict() for r in records], total


def get_resource(kind: ResourceKind, record_id: str, user_id: str | None) -> dict:
    spec = get_spec(kind)
    include = tuple(spec.includes.values()) + access_includes(spec)

    record = get_delegate(kind).find_unique(record_id, include=include)
    if record is None:
        raise RecordNotFoundError("Not found")
    if not record_visible_to(spec, record, user_id):
        current_app.logger.warning("Access denied: user=%s resource=%s id=%s", user_id, kind.value, record_id)
        raise AccessDeniedError("Forbidden")

    return serialize(spec, record, with_includes=True)


# =============================================================================
# CREATE
# =============================================================================

def _create_store(kind: ResourceKind, spec: ResourceSpec, payload: Any, user_id: str) -> dict:
    patch = _validated(spec, payload, partial=False)
    store = get_delegate(kind).create(
        patch,
        related={"memberships": [{"user_id": user_id, "role": "OWNER"}]},
    )
    current_app.logger.info("Store %s created with OWNER %s", store.id, user_id)
    return serialize(spec, store)


def _create_membership(kind: ResourceKind, spec: ResourceSpec, payload: Any, user_id: str) -> dict:
    patch = _validated(spec, payload, partial=False)
    store = _load_store(patch.pop("store_id"))
    require_store_member(store, user_id, role="OWNER")
    user = _load_user(patch.pop("user_id"))

    record = get_delegate(kind).create({**patch, "store": store, "user": user})
    return serialize(spec, record)


def _create_store_child(kind: ResourceKind, spec: ResourceSpec, payload: Any, user_id: str) -> dict:
    """Customers and items: attach to an existing store the caller belongs to."""
    patch = _validated(spec, payload, partial=False)
    store = _load_store(patch.pop("store_id"))
    require_store_member(store, user_id)

    record = get_delegate(kind).create({**patch, "store": store})
    return serialize(spec, record)


def _create_utang(kind: ResourceKind, spec: ResourceSpec, payload: Any, user_id: str) -> dict:
    """
    Create an utang record, optionally with nested `items` and `payments`.

    Parent and children are written in one transaction; any failure leaves
    nothing behind.
    """
    if payload is not None and not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    body = dict(payload or {})
    line_rows = _child_rows(body.pop("items", None), "items")
    payment_rows = _child_rows(body.pop("payments", None), "payments")

    patch = _validated(spec, body, partial=False)
    store = _load_store(patch.pop("store_id"))
    require_store_member(store, user_id)
    customer = _store_customer(store.id, patch.pop("customer_id"))

    related: dict[str, list[dict]] = {}
    if line_rows:
        children = []
        for row in line_rows:
            child = validate_payload(model=UtangLineItem, payload=row, policy=LINE_ITEM_CHILD_POLICY, partial=False)
            enforce_rules_line_item(child)
            child["item"] = _store_item(store.id, child.pop("item_id"))
            children.append(child)
        related["line_items"] = children
    if payment_rows:
        children = []
        for row in payment_rows:
            child = validate_payload(model=Payment, payload=row, policy=PAYMENT_CHILD_POLICY, partial=False)
            enforce_rules_payment(child)
            children.append(child)
        related["payments"] = children

    record = get_delegate(kind).create({**patch, "store": store, "customer": customer}, related=related)
    return serialize(spec, record, with_includes=True)


def _create_utang_child(kind: ResourceKind, spec: ResourceSpec, payload: Any, user_id: str) -> dict:
    """Line items and payments: attach to an existing utang the caller can reach."""
    patch = _validated(spec, payload, partial=False)
    utang = _load_utang(patch.pop("utang_id"))
    require_store_member(utang.store, user_id)

    data = {**patch, "utang": utang}
    if kind is ResourceKind.UTANG_ITEMS:
        data["item"] = _store_item(utang.store_id, data.pop("item_id"))

    record = get_delegate(kind).create(data)
    return serialize(spec, record)


_CREATORS = {
    ResourceKind.STORES: _create_store,
    ResourceKind.STORE_USERS: _create_membership,
    ResourceKind.CUSTOMERS: _create_store_child,
    ResourceKind.ITEMS: _create_store_child,
    ResourceKind.UTANG: _create_utang,
    ResourceKind.UTANG_ITEMS: _create_utang_child,
    ResourceKind.PAYMENTS: _create_utang_child,
}


def create_resource(kind: ResourceKind, payload: Any, user_id: str | None) -> dict:
    if user_id is None:
        raise AuthenticationRequiredError("Authentication required")

    creator = _CREATORS.get(kind)
    if creator is None:
        raise AccessDeniedError("Accounts are created through sign-up")
    return creator(kind, get_spec(kind), payload, user_id)


# =============================================================================
# UPDATE / DELETE
# =============================================================================

def _ensure_unreferenced(kind: ResourceKind, current) -> None:
    """A customer or item may only change store while no utang record points at it."""
    if kind is ResourceKind.CUSTOMERS:
        referenced = get_delegate(ResourceKind.UTANG).count(UtangRecord.customer_id == current.id) > 0
    elif kind is ResourceKind.ITEMS:
        referenced = get_delegate(ResourceKind.UTANG_ITEMS).count(UtangLineItem.item_id == current.id) > 0
    else:
        return
    if referenced:
        raise ConflictError(f"{kind.value} is referenced by utang records and cannot change store")


def _check_update_targets(kind: ResourceKind, current, patch: dict, user_id: str) -> None:
    """
    Re-parenting guard: a row may only move to a store (or utang) the caller
    also belongs to, and must stay consistent with its referenced rows.
    """
    if kind is ResourceKind.STORE_USERS:
        require_store_member(_load_store(current.store_id), user_id, role="OWNER")
        return

    if "store_id" in patch:
        require_store_member(_load_store(patch["store_id"]), user_id)
        if patch["store_id"] != current.store_id:
            _ensure_unreferenced(kind, current)

    if kind is ResourceKind.UTANG and ("store_id" in patch or "customer_id" in patch):
        _store_customer(patch.get("store_id", current.store_id), patch.get("customer_id", current.customer_id))
        if "store_id" in patch:
            for line_item in current.line_items:
                _store_item(patch["store_id"], line_item.item_id)

    if kind in (ResourceKind.UTANG_ITEMS, ResourceKind.PAYMENTS):
        utang = current.utang
        if "utang_id" in patch:
            utang = _load_utang(patch["utang_id"])
            require_store_member(utang.store, user_id)
        if kind is ResourceKind.UTANG_ITEMS and ("utang_id" in patch or "item_id" in patch):
            _store_item(utang.store_id, patch.get("item_id", current.item_id))


def update_resource(kind: ResourceKind, record_id: str, payload: Any, user_id: str | None) -> dict:
    """
    Apply a validated partial update.

    verify_access must have passed for (kind, record_id, user_id) first.
    """
    if user_id is None:
        raise AccessDeniedError("Forbidden")

    spec = get_spec(kind)
    patch = _validated(spec, payload, partial=True)

    current = get_delegate(kind).find_unique(record_id, include=access_includes(spec))
    if current is None:
        raise RecordNotFoundError("Not found")
    _check_update_targets(kind, current, patch, user_id)

    record = get_delegate(kind).update(record_id, patch)
    return serialize(spec, record)


def delete_resource(kind: ResourceKind, record_id: str) -> dict:
    """
    Hard-delete one row and return its prior representation.

    verify_access must have passed for the caller first.
    """
    return get_delegate(kind).delete(record_id)
