from decimal import Decimal

from prostore.resources import Condition, SortKey
from prostore.services.product_query import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_PAGE,
    ProductListParams,
    build_filter,
    build_product_query,
    parse_positive_int,
    parse_price,
    run_product_query,
)


class RecordingStore:
    """In-memory store that remembers the arguments it received."""

    def __init__(self, total: int):
        self.total = total
        self.count_conditions = None
        self.find_args = None

    def count(self, conditions=()):
        self.count_conditions = tuple(conditions)
        return self.total

    def find(self, conditions=(), sort=(), skip=0, limit=None):
        self.find_args = {"conditions": tuple(conditions), "sort": tuple(sort), "skip": skip, "limit": limit}
        return [f"item-{i}" for i in range(skip, min(skip + limit, self.total))]


def test_defaults_when_nothing_is_given():
    query = build_product_query(ProductListParams())
    assert query.conditions == ()
    assert query.page == 1
    assert query.limit == DEFAULT_LIMIT
    assert query.skip == 0
    assert query.sort == SortKey("created_at", descending=True)


def test_skip_is_page_minus_one_times_limit():
    query = build_product_query(ProductListParams(page="3", limit="5"))
    assert (query.page, query.limit, query.skip) == (3, 5, 10)


def test_invalid_page_and_limit_fall_back_to_defaults():
    for raw in ("abc", "0", "-4", "", "1.5"):
        query = build_product_query(ProductListParams(page=raw, limit=raw))
        assert query.page == 1
        assert query.limit == DEFAULT_LIMIT


def test_oversized_page_and_limit_are_clamped():
    query = build_product_query(ProductListParams(page="99999999999999999999", limit="99999999999999999999"))
    assert query.limit == MAX_LIMIT
    assert query.page == MAX_PAGE
    assert query.skip < 2**63


def test_parsers_never_raise():
    assert parse_positive_int(None, 7) == 7
    assert parse_positive_int("12", 7) == 12
    assert parse_price("ten") is None
    assert parse_price("NaN") is None
    assert parse_price("Infinity") is None
    assert parse_price(" 10.5 ") == Decimal("10.5")


def test_sort_keys():
    assert build_product_query(ProductListParams(sort="price-asc")).sort == SortKey("price")
    assert build_product_query(ProductListParams(sort="price-desc")).sort == SortKey("price", descending=True)
    assert build_product_query(ProductListParams(sort="cheapest")).sort == SortKey("created_at", descending=True)


def test_filter_composition():
    conditions = build_filter(
        search="  shoe ",
        brand_id="b1",
        color_id="c1",
        min_price=Decimal("10"),
        max_price=Decimal("50"),
    )
    assert conditions == (
        Condition("name", "icontains", "shoe"),
        Condition("brand_id", "eq", "b1"),
        Condition("color_id", "eq", "c1"),
        Condition("price", "gte", Decimal("10")),
        Condition("price", "lte", Decimal("50")),
    )


def test_invalid_prices_are_dropped_from_the_filter():
    query = build_product_query(ProductListParams(min_price="cheap", max_price="50"))
    assert query.conditions == (Condition("price", "lte", Decimal("50")),)


def test_count_uses_the_same_conditions_as_find():
    store = RecordingStore(total=20)
    query = build_product_query(
        ProductListParams(search="shoe", min_price="10", max_price="50", page="2", limit="8")
    )

    result = run_product_query(store, query)

    assert store.count_conditions == store.find_args["conditions"]
    assert store.find_args["skip"] == 8
    assert store.find_args["limit"] == 8
    assert result["products"] == [f"item-{i}" for i in range(8, 16)]
    assert result["current_page"] == 2
    assert result["total_pages"] == 3
    assert result["total_products"] == 20


def test_empty_result_has_zero_pages():
    result = run_product_query(RecordingStore(total=0), build_product_query(ProductListParams()))
    assert result["total_pages"] == 0
    assert result["products"] == []
