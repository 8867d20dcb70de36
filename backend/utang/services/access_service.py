# Overview: Row-level access control derived from store memberships.

"""
Store-Membership Access Control

Every row except User and StoreMembership reaches exactly one Store through a
fixed relationship path (ResourceSpec.store_path). A user may see a row iff
they hold a StoreMembership on that store.

The same descriptor drives two checks:
- build_access_predicate: bulk SQL predicate AND-ed into list queries
- record_visible_to / verify_access: point check on an already-fetched row,
  used by get-one and before every update or delete

SECURITY INVARIANTS:
1. A missing user id never grants access (verify_access returns False)
2. List queries are only built for an authenticated user
"""

from __future__ import annotations

from flask import current_app

from ..models import Store, StoreMembership
from .resource_registry import AccessRule, ResourceKind, ResourceSpec, get_delegate, get_spec


class AuthenticationRequiredError(Exception):
    """Raised when an operation that needs a user id is called without one."""
    pass


class AccessDeniedError(Exception):
    """Raised when an authenticated user acts outside their stores."""
    pass


def _relationship_chain(model, path: tuple[str, ...]) -> list:
    attrs = []
    current = model
    for name in path:
        attr = getattr(current, name)
        attrs.append(attr)
        current = attr.property.mapper.class_
    return attrs


def build_access_predicate(kind: ResourceKind, user_id: str):
    """
    SQL predicate restricting `kind` rows to those visible to user_id.

    For store-owned kinds the membership test is wrapped in one has() per hop:
    Payment -> utang.has(store.has(memberships.any(user_id == ...)))
    """
    spec = get_spec(kind)

    if spec.access is AccessRule.SELF:
        return spec.model.id == user_id
    if spec.access is AccessRule.OWN_ROW:
        return spec.model.user_id == user_id

    predicate = Store.memberships.any(StoreMembership.user_id == user_id)
    for relationship in reversed(_relationship_chain(spec.model, spec.store_path)):
        predicate = relationship.has(predicate)
    return predicate


def access_includes(spec: ResourceSpec) -> tuple[str, ...]:
    """Relationship paths to eager-load so record_visible_to needs no extra queries."""
    if spec.access is not AccessRule.STORE_MEMBER:
        return ()
    return (".".join(spec.store_path + ("memberships",)),)


def owning_store(spec: ResourceSpec, record) -> Store | None:
    current = record
    for name in spec.store_path:
        current = getattr(current, name)
        if current is None:
            return None
    return current


def record_visible_to(spec: ResourceSpec, record, user_id: str | None) -> bool:
    if user_id is None:
        return False
    if spec.access is AccessRule.SELF:
        return record.id == user_id
    if spec.access is AccessRule.OWN_ROW:
        return record.user_id == user_id

    store = owning_store(spec, record)
    return store is not None and store.has_member(user_id)


def verify_access(kind: ResourceKind, record_id: str, user_id: str | None) -> bool:
    """
    Point check: may user_id act on record `record_id` of `kind`?

    False when the user id is missing, the record does not exist, or the
    user holds no membership on the record's store.
    """
    if user_id is None:
        return False

    spec = get_spec(kind)
    record = get_delegate(kind).find_unique(record_id, include=access_includes(spec))
    if record is None:
        return False

    allowed = record_visible_to(spec, record, user_id)
    if not allowed:
        current_app.logger.warning(
            "Access denied: user=%s resource=%s id=%s", user_id, ResourceKind(kind).value, record_id
        )
    return allowed


def require_store_member(store: Store, user_id: str, *, role: str | None = None) -> StoreMembership:
    """Raise AccessDeniedError unless user_id is a member (optionally with `role`) of store."""
    for membership in store.memberships:
        if membership.user_id == user_id and (role is None or membership.role == role):
            return membership
    current_app.logger.warning("Access denied: user=%s store=%s role=%s", user_id, store.id, role or "ANY")
    raise AccessDeniedError("Forbidden")
