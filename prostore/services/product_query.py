"""
Monta a consulta da listagem de produtos a partir dos parâmetros da requisição.

Os parâmetros chegam como texto. Valores numéricos inválidos nunca viram
filtro: ``page``/``limit`` voltam ao padrão e preços são ignorados. Valores
acima do teto são limitados a ``MAX_PAGE``/``MAX_LIMIT``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from prostore.domain.core.enums import ProductSort
from prostore.resources import Condition, ResourceStore, SortKey

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 8
MAX_LIMIT = 100
# skip = (page - 1) * limit precisa caber num BIGINT
MAX_PAGE = (2**63 - 1) // MAX_LIMIT

SORT_KEYS = {
    ProductSort.price_asc: SortKey("price"),
    ProductSort.price_desc: SortKey("price", descending=True),
    ProductSort.newest: SortKey("created_at", descending=True),
}


def _clean_text(value: str | None) -> str | None:
    text = (value or "").strip()
    return text or None


def parse_positive_int(value: str | int | None, default: int, maximum: int | None = None) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if number <= 0:
        return default
    if maximum is not None and number > maximum:
        return maximum
    return number


def parse_price(value: str | int | float | Decimal | None) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def parse_sort(value: str | None) -> ProductSort:
    try:
        return ProductSort((value or "").strip().lower())
    except ValueError:
        return ProductSort.newest


@dataclass(frozen=True)
class ProductListParams:
    search: str | None = None
    brand_id: str | None = None
    color_id: str | None = None
    min_price: str | None = None
    max_price: str | None = None
    sort: str | None = None
    page: str | None = None
    limit: str | None = None


@dataclass(frozen=True)
class ProductQuery:
    conditions: tuple[Condition, ...]
    sort: SortKey
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def build_filter(
    search: str | None = None,
    brand_id: str | None = None,
    color_id: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
) -> tuple[Condition, ...]:
    conditions: list[Condition] = []
    search = _clean_text(search)
    if search:
        conditions.append(Condition("name", "icontains", search))
    brand_id = _clean_text(brand_id)
    if brand_id:
        conditions.append(Condition("brand_id", "eq", brand_id))
    color_id = _clean_text(color_id)
    if color_id:
        conditions.append(Condition("color_id", "eq", color_id))
    if min_price is not None:
        conditions.append(Condition("price", "gte", min_price))
    if max_price is not None:
        conditions.append(Condition("price", "lte", max_price))
    return tuple(conditions)


def build_product_query(params: ProductListParams) -> ProductQuery:
    return ProductQuery(
        conditions=build_filter(
            search=params.search,
            brand_id=params.brand_id,
            color_id=params.color_id,
            min_price=parse_price(params.min_price),
            max_price=parse_price(params.max_price),
        ),
        sort=SORT_KEYS[parse_sort(params.sort)],
        page=parse_positive_int(params.page, DEFAULT_PAGE, MAX_PAGE),
        limit=parse_positive_int(params.limit, DEFAULT_LIMIT, MAX_LIMIT),
    )


def run_product_query(store: ResourceStore, query: ProductQuery) -> dict:
    total = store.count(query.conditions)
    products = store.find(query.conditions, sort=(query.sort,), skip=query.skip, limit=query.limit)
    return {
        "products": products,
        "current_page": query.page,
        "total_pages": math.ceil(total / query.limit),
        "total_products": total,
    }
