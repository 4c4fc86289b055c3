"""Rotas de marcas, modelos, cores e tamanhos, todas geradas pelo mesmo factory."""
from typing import Type

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from prostore import models, schemas
from prostore.auth.dependencies import require_admin
from prostore.services.crud import CrudHandlers, crud_handlers

router = APIRouter(tags=["catalog"])


def register_crud_routes(
    parent: APIRouter,
    path: str,
    model: type,
    payload_schema: Type[BaseModel],
    out_schema: Type[BaseModel],
    label: str,
) -> None:
    handlers_dep = crud_handlers(model)

    @parent.get(f"/{path}", response_model=list[out_schema], name=f"list_{path}")
    def list_items(handlers: CrudHandlers = Depends(handlers_dep)):
        return handlers.list()

    @parent.post(
        f"/{path}",
        response_model=out_schema,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{path}",
    )
    def create_item(
        payload: payload_schema,
        handlers: CrudHandlers = Depends(handlers_dep),
        _=Depends(require_admin),
    ):
        return handlers.create(payload.model_dump(exclude_unset=True))

    @parent.put(f"/{path}/{{item_id}}", response_model=out_schema, name=f"update_{path}")
    def update_item(
        item_id: str,
        payload: payload_schema,
        handlers: CrudHandlers = Depends(handlers_dep),
        _=Depends(require_admin),
    ):
        return handlers.update(item_id, payload.model_dump(exclude_unset=True))

    @parent.delete(f"/{path}/{{item_id}}", response_model=schemas.DeletedOut, name=f"delete_{path}")
    def delete_item(
        item_id: str,
        handlers: CrudHandlers = Depends(handlers_dep),
        _=Depends(require_admin),
    ):
        deleted_id = handlers.delete(item_id)
        return schemas.DeletedOut(message=f"{label} deleted", id=deleted_id)


register_crud_routes(router, "brands", models.Brand, schemas.ReferenceIn, schemas.ReferenceOut, "Brand")
register_crud_routes(router, "models", models.ProductModel, schemas.ReferenceIn, schemas.ReferenceOut, "Model")
register_crud_routes(router, "colors", models.Color, schemas.ColorIn, schemas.ColorOut, "Color")
register_crud_routes(router, "sizes", models.Size, schemas.ReferenceIn, schemas.ReferenceOut, "Size")
