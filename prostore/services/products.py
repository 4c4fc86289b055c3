"""
Ciclo de vida do produto: criação, atualização e remoção.

Efeitos colaterais (apagar imagem, avisar mudança de preço) não rodam aqui:
são entregues ao ``dispatch`` recebido, que no HTTP é
``BackgroundTasks.add_task`` e executa depois da resposta.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from sqlalchemy.orm import Session, selectinload

from prostore import models
from prostore.errors import CatalogError, NotFound, ValidationError
from prostore.media import validate_image
from prostore.resources import SqlAlchemyStore, require
from prostore.services import notifier
from prostore.services.product_query import ProductListParams, build_product_query, run_product_query
from prostore.storage import build_media_key, storage_delete_by_url, storage_save

logger = logging.getLogger(__name__)

Dispatch = Callable[..., Any]

PRODUCT_OPTIONS = (
    selectinload(models.Product.brand),
    selectinload(models.Product.model),
    selectinload(models.Product.color),
    selectinload(models.Product.size),
)

# campo do formulário -> entidade referenciada
REFERENCE_FIELDS = {
    "brand_id": (models.Brand, "Brand"),
    "model_id": (models.ProductModel, "Model"),
    "color_id": (models.Color, "Color"),
    "size_id": (models.Size, "Size"),
}
OPTIONAL_REFERENCES = ("model_id", "color_id", "size_id")

# limites das colunas: price Numeric(12, 2), stock Integer
MAX_PRICE = Decimal("9999999999.99")
MAX_STOCK = 2**31 - 1


@dataclass(frozen=True)
class ImageUpload:
    contents: bytes
    content_type: str | None = None
    filename: str | None = None


def product_store(db: Session) -> SqlAlchemyStore[models.Product]:
    return SqlAlchemyStore(db, models.Product, options=PRODUCT_OPTIONS)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


def _parse_decimal(value: Any) -> Decimal | None:
    text = _text(value)
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _parse_int(value: Any) -> int | None:
    number = _parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    # "1e2000000" é curto, mas int() montaria milhões de dígitos
    if abs(number) > MAX_STOCK:
        raise ValidationError("Stock is out of range")
    return int(number)


def ensure_valid_numbers(price: Decimal, stock: Decimal | int) -> None:
    if price < 0:
        raise ValidationError("Price must be zero or greater")
    if stock < 0:
        raise ValidationError("Stock must be zero or greater")
    if price > MAX_PRICE:
        raise ValidationError("Price is out of range")
    if stock > MAX_STOCK:
        raise ValidationError("Stock is out of range")


def _ensure_references_exist(db: Session, values: Mapping[str, str | None]) -> None:
    for field, (model, label) in REFERENCE_FIELDS.items():
        ref_id = values.get(field)
        if ref_id and db.get(model, ref_id) is None:
            raise ValidationError(f"{label} not found")


def save_product_image(image: ImageUpload) -> str:
    ext = validate_image(image.contents, image.content_type, image.filename)
    key = build_media_key("products", f"{uuid.uuid4().hex}.{ext}")
    url = storage_save(key, image.contents, image.content_type)
    logger.info("Stored product image url=%s", url)
    return url


def list_products(db: Session, params: ProductListParams) -> dict:
    return run_product_query(product_store(db), build_product_query(params))


def get_product(db: Session, product_id: str) -> models.Product:
    return require(product_store(db).find_by_id(product_id), "Product")


def create_product(
    db: Session,
    fields: Mapping[str, Any],
    dispatch: Dispatch,
    image: ImageUpload | None = None,
) -> models.Product:
    name = _text(fields.get("name"))
    raw_price = _text(fields.get("price"))
    raw_stock = _text(fields.get("stock"))
    brand_id = _text(fields.get("brand_id"))
    if not name or not raw_price or not raw_stock or not brand_id:
        raise ValidationError("Name, price, stock and brand are required")

    image_url = save_product_image(image) if image else None
    try:
        price = _parse_decimal(raw_price)
        stock = _parse_int(raw_stock)
        if price is None or stock is None:
            raise ValidationError("Price and stock must be numbers")
        ensure_valid_numbers(price, stock)

        doc: dict[str, Any] = {
            "name": name,
            "price": price,
            "stock": stock,
            "brand_id": brand_id,
            "image_url": image_url,
        }
        for field in OPTIONAL_REFERENCES:
            doc[field] = _text(fields.get(field)) or None
        _ensure_references_exist(db, doc)

        product = product_store(db).insert(doc)
    except CatalogError:
        if image_url:
            dispatch(storage_delete_by_url, image_url)
        raise
    logger.info("Product created id=%s", product.id)
    return product


def _merge_update(product: models.Product, fields: Mapping[str, Any]) -> dict[str, Any]:
    doc: dict[str, Any] = {}

    name = _text(fields.get("name"))
    if name:
        doc["name"] = name

    # valores não numéricos mantêm o anterior
    if "price" in fields:
        price = _parse_decimal(fields.get("price"))
        if price is not None:
            doc["price"] = price
    if "stock" in fields:
        stock = _parse_int(fields.get("stock"))
        if stock is not None:
            doc["stock"] = stock
    ensure_valid_numbers(doc.get("price", product.price), doc.get("stock", product.stock))

    brand_id = _text(fields.get("brand_id"))
    if brand_id:
        doc["brand_id"] = brand_id
    for field in OPTIONAL_REFERENCES:
        if field in fields and fields[field] is not None:
            doc[field] = _text(fields[field]) or None
    return doc


def update_product(
    db: Session,
    product_id: str,
    fields: Mapping[str, Any],
    dispatch: Dispatch,
    image: ImageUpload | None = None,
) -> models.Product:
    store = product_store(db)
    product = require(store.find_by_id(product_id), "Product")
    old_price = product.price
    old_image_url = product.image_url

    new_image_url = save_product_image(image) if image else None
    try:
        doc = _merge_update(product, fields)
        _ensure_references_exist(db, doc)
        if new_image_url:
            doc["image_url"] = new_image_url
        updated = store.update_by_id(product_id, doc)
        if updated is None:
            raise NotFound("Product not found")
    except CatalogError:
        if new_image_url:
            dispatch(storage_delete_by_url, new_image_url)
        raise

    if new_image_url and old_image_url and old_image_url != new_image_url:
        dispatch(storage_delete_by_url, old_image_url)

    if updated.price != old_price:
        logger.info("Price changed product_id=%s old=%s new=%s", updated.id, old_price, updated.price)
        dispatch(
            notifier.notify_price_change,
            notifier.PriceSnapshot(product_id=updated.id, name=updated.name, price=updated.price),
            old_price,
        )
    return updated


def delete_product(db: Session, product_id: str, dispatch: Dispatch) -> str:
    store = product_store(db)
    product = require(store.find_by_id(product_id), "Product")
    image_url = product.image_url
    if store.delete_by_id(product_id) is None:
        raise NotFound("Product not found")
    if image_url:
        dispatch(storage_delete_by_url, image_url)
    logger.info("Product deleted id=%s", product_id)
    return product_id
