"""
Resource Store: coleção persistente com CRUD + consulta.

Filtros e ordenação são descritos por ``Condition`` e ``SortKey``, sem
referência ao SQLAlchemy, para que o query builder e o CRUD genérico
continuem independentes do banco. ``SqlAlchemyStore`` é a implementação
usada pela API.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Literal, Protocol, Sequence, TypeVar

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from prostore.errors import NotFound, UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operator = Literal["eq", "icontains", "gte", "lte"]


@dataclass(frozen=True)
class Condition:
    field: str
    op: Operator
    value: Any


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


class ResourceStore(Protocol[T]):
    def find(
        self,
        conditions: Sequence[Condition] = (),
        sort: Sequence[SortKey] = (),
        skip: int = 0,
        limit: int | None = None,
    ) -> list[T]: ...

    def count(self, conditions: Sequence[Condition] = ()) -> int: ...

    def find_by_id(self, record_id: str) -> T | None: ...

    def insert(self, doc: dict[str, Any]) -> T: ...

    def update_by_id(self, record_id: str, doc: dict[str, Any]) -> T | None: ...

    def delete_by_id(self, record_id: str) -> T | None: ...


def _column(model, field: str):
    column = getattr(model, field, None)
    if column is None:
        raise ValueError(f"{model.__name__} has no field {field!r}")
    return column


def _clause(model, condition: Condition):
    column = _column(model, condition.field)
    if condition.op == "eq":
        return column == condition.value
    if condition.op == "icontains":
        return column.icontains(condition.value, autoescape=True)
    if condition.op == "gte":
        return column >= condition.value
    if condition.op == "lte":
        return column <= condition.value
    raise ValueError(f"Unsupported operator: {condition.op}")


def _integrity_message(exc: IntegrityError) -> str:
    text = str(exc.orig).lower() if exc.orig is not None else ""
    if "unique" in text or "duplicate" in text:
        return "A record with this value already exists"
    if "check" in text:
        return "Value out of range"
    if "not null" in text:
        return "Missing required field"
    return "Invalid payload"


class SqlAlchemyStore(Generic[T]):
    """Resource Store over one mapped class, bound to a request session."""

    def __init__(self, db: Session, model: type[T], options: Iterable = ()):
        self.db = db
        self.model = model
        self.options = tuple(options)

    def _select(self, conditions: Sequence[Condition]):
        stmt = select(self.model)
        for condition in conditions:
            stmt = stmt.where(_clause(self.model, condition))
        return stmt

    def find(
        self,
        conditions: Sequence[Condition] = (),
        sort: Sequence[SortKey] = (),
        skip: int = 0,
        limit: int | None = None,
    ) -> list[T]:
        stmt = self._select(conditions).options(*self.options)
        for key in sort:
            column = _column(self.model, key.field)
            stmt = stmt.order_by(desc(column) if key.descending else asc(column))
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.exception("find failed on %s", self.model.__name__)
            raise UpstreamFailure(str(exc)) from exc

    def count(self, conditions: Sequence[Condition] = ()) -> int:
        stmt = select(func.count()).select_from(self._select(conditions).subquery())
        try:
            return int(self.db.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            logger.exception("count failed on %s", self.model.__name__)
            raise UpstreamFailure(str(exc)) from exc

    def find_by_id(self, record_id: str) -> T | None:
        try:
            return self.db.get(self.model, record_id, options=self.options)
        except SQLAlchemyError as exc:
            logger.exception("lookup failed on %s id=%s", self.model.__name__, record_id)
            raise UpstreamFailure(str(exc)) from exc

    def insert(self, doc: dict[str, Any]) -> T:
        try:
            record = self.model(id=str(uuid.uuid4()), **doc)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc
        self.db.add(record)
        self._commit()
        self.db.refresh(record)
        return record

    def update_by_id(self, record_id: str, doc: dict[str, Any]) -> T | None:
        record = self.find_by_id(record_id)
        if record is None:
            return None
        try:
            for field, value in doc.items():
                _column(self.model, field)
                setattr(record, field, value)
        except ValueError as exc:
            self.db.rollback()
            raise ValidationError(str(exc)) from exc
        self._commit()
        self.db.refresh(record)
        return record

    def delete_by_id(self, record_id: str) -> T | None:
        record = self.find_by_id(record_id)
        if record is None:
            return None
        self.db.delete(record)
        self._commit()
        return record

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("integrity error on %s: %s", self.model.__name__, exc.orig)
            raise ValidationError(_integrity_message(exc)) from exc
        except (DataError, OverflowError) as exc:
            # número fora do tamanho da coluna
            self.db.rollback()
            logger.warning("value out of range on %s: %s", self.model.__name__, exc)
            raise ValidationError("Value out of range") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("write failed on %s", self.model.__name__)
            raise UpstreamFailure(str(exc)) from exc


def require(record: T | None, label: str = "Item") -> T:
    if record is None:
        raise NotFound(f"{label} not found")
    return record
