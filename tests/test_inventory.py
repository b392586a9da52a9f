from auction_api.models import Item
from dashboard import inventory


def item(item_id, **fields):
    return Item(item_id=item_id, **fields)


def ids(items):
    return [i.item_id for i in items]


def test_extract_numeric_id():
    assert inventory.extract_numeric_id("item-123") == 123
    assert inventory.extract_numeric_id("lot7-b9") == 7
    assert inventory.extract_numeric_id("item-abc") == 0
    assert inventory.extract_numeric_id(None) == 0


def test_price_sort_puts_missing_last():
    items = [
        item("item-1", price=50),
        item("item-2"),
        item("item-3", value_estimate={"min_value": 100, "max_value": 300}),
        item("item-4", price=10),
    ]

    high_first, sort = inventory.sort_items(items, "price-desc")
    low_first, _ = inventory.sort_items(items, "price-asc")

    assert sort == "price-desc"
    assert ids(high_first) == ["item-3", "item-1", "item-4", "item-2"]
    assert ids(low_first) == ["item-4", "item-1", "item-3", "item-2"]


def test_id_sort_is_numeric():
    items = [item("item-10"), item("item-9"), item("item-100")]
    ordered, _ = inventory.sort_items(items, "id-asc")
    assert ids(ordered) == ["item-9", "item-10", "item-100"]


def test_title_sort_ignores_case_and_uses_item_title():
    items = [item("a", title="bracelet"), item("b", item_title="Anklet"), item("c", title="Cameo")]
    ordered, _ = inventory.sort_items(items, "title-asc")
    assert ids(ordered) == ["b", "a", "c"]


def test_unknown_sort_falls_back_to_default():
    _, sort = inventory.sort_items([], "color-asc")
    assert sort == inventory.DEFAULT_SORT


def test_paginate_clamps_page():
    items = [item(f"item-{n}") for n in range(25)]

    page = inventory.paginate(items, page=9, page_size=10)

    assert page.page == 3
    assert page.pages == 3
    assert ids(page.items) == ["item-20", "item-21", "item-22", "item-23", "item-24"]
    assert page.has_previous and not page.has_next


def test_paginate_rejects_odd_page_sizes():
    page = inventory.paginate([item("item-1")], page="x", page_size=7)
    assert page.page == 1
    assert page.page_size == inventory.DEFAULT_PAGE_SIZE
    assert page.pages == 1


def test_finalized_items_have_descriptions():
    items = [item("a", description="14k ring"), item("b", description=""), item("c")]
    assert ids(inventory.finalized_items(items)) == ["a"]


def test_parse_selected_ids():
    assert inventory.parse_selected_ids(["item-2", " item-1 ", "", "item-2"]) == ["item-2", "item-1"]


def test_query_string_overrides():
    assert inventory.query_string({"sort": "id-asc", "page": 2, "q": ""}, page=3) == "sort=id-asc&page=3"
