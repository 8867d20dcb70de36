# Overview: SQLAlchemy-backed storage delegate bound to one model class.

"""
Storage Delegate

One delegate per resource kind exposes the small surface the REST layer
needs: find_many / count / find_unique / create / update / delete.

- Predicates are SQLAlchemy expressions; the delegate never builds them.
- Mutations run in their own transaction and are retried on transient
  lock errors (see concurrency.run_with_retry).
- Constraint violations surface as ConflictError; a row missing at
  mutation time surfaces as RecordNotFoundError.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..validation import ConflictError
from .concurrency import lock_for_update, run_with_retry


class RecordNotFoundError(Exception):
    """Raised when a record (or a referenced parent) does not exist."""
    pass


def _loader_option(model, path: str):
    """Turn a dotted relationship path ("utang.store.memberships") into a loader option."""
    option = None
    current = model
    for name in path.split("."):
        attr = getattr(current, name)
        loader = selectinload if attr.property.uselist else joinedload
        option = loader(attr) if option is None else getattr(option, loader.__name__)(attr)
        current = attr.property.mapper.class_
    return option


def _build_child(cls, row: dict):
    return cls(**row)


class StorageDelegate:
    def __init__(self, model):
        self.model = model

    def __repr__(self) -> str:
        return f"<StorageDelegate model={self.model.__name__}>"

    def _query(self, where=None):
        query = db.session.query(self.model)
        if where is not None:
            query = query.filter(where)
        return query

    def find_many(self, where=None, *, skip: int = 0, take: int | None = None, order_by: Iterable = ()) -> list:
        query = self._query(where)
        order_by = tuple(order_by)
        if order_by:
            query = query.order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if take is not None:
            query = query.limit(take)
        return query.all()

    def count(self, where=None) -> int:
        return self._query(where).count()

    def find_unique(self, record_id: str, include: Iterable[str] = ()):
        query = self._query(self.model.id == record_id)
        for path in include:
            query = query.options(_loader_option(self.model, path))
        return query.first()

    def create(self, data: dict[str, Any], *, related: dict[str, list[dict]] | None = None):
        """
        Insert one row, plus child rows for the named relationships, in a
        single transaction. `data` may carry relationship attributes
        (e.g. store=<Store>) to attach the row to an already-loaded parent.
        """
        def _op():
            record = self.model(**data)
            db.session.add(record)
            try:
                db.session.flush()
                for name, rows in (related or {}).items():
                    child_cls = getattr(self.model, name).property.mapper.class_
                    collection = getattr(record, name)
                    for row in rows:
                        collection.append(_build_child(child_cls, row))
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                raise _conflict(exc) from exc
            except Exception:
                db.session.rollback()
                raise
            return record

        return run_with_retry(_op)

    def update(self, record_id: str, data: dict[str, Any]):
        def _op():
            record = lock_for_update(self._query(self.model.id == record_id)).first()
            if record is None:
                raise RecordNotFoundError(f"{self.model.__name__} not found")
            for key, value in data.items():
                setattr(record, key, value)
            _commit()
            return record

        return run_with_retry(_op)

    def delete(self, record_id: str) -> dict:
        """Delete one row and return its last representation."""
        def _op():
            record = lock_for_update(self._query(self.model.id == record_id)).first()
            if record is None:
                raise RecordNotFoundError(f"{self.model.__name__} not found")
            snapshot = record.to_dict()
            db.session.delete(record)
            _commit()
            return snapshot

        return run_with_retry(_op)


def _conflict(exc: IntegrityError) -> ConflictError:
    return ConflictError(f"Constraint violation: {exc.orig}")


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise _conflict(exc) from exc
