"""
CRUD genérico das entidades de referência (marcas, modelos, cores, tamanhos).

Os handlers só conhecem um ``ResourceStore``; nenhuma regra específica de
entidade entra aqui.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from fastapi import Depends
from sqlalchemy.orm import Session

from prostore.db import get_db
from prostore.errors import NotFound
from prostore.resources import ResourceStore, SortKey, SqlAlchemyStore

T = TypeVar("T")

NAME_ASC = (SortKey("name"),)


@dataclass(frozen=True)
class CrudHandlers(Generic[T]):
    store: ResourceStore[T]

    def create(self, payload: dict[str, Any]) -> T:
        return self.store.insert(payload)

    def list(self) -> list[T]:
        return self.store.find(sort=NAME_ASC)

    def update(self, record_id: str, payload: dict[str, Any]) -> T:
        record = self.store.update_by_id(record_id, payload)
        if record is None:
            raise NotFound("Item not found")
        return record

    def delete(self, record_id: str) -> str:
        if self.store.delete_by_id(record_id) is None:
            raise NotFound("Item not found")
        return record_id


def crud_handlers(model: type[T]) -> Callable[[Session], CrudHandlers[T]]:
    """FastAPI dependency that binds the handlers to a per-request store."""

    def dependency(db: Session = Depends(get_db)) -> CrudHandlers[T]:
        return CrudHandlers(SqlAlchemyStore(db, model))

    return dependency
