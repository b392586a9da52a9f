"""
Inventory table sorting, paging and selection
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from auction_api.models import Item

SORT_OPTIONS = {
    "price-desc": ("Price: High to Low", "price", True),
    "price-asc": ("Price: Low to High", "price", False),
    "date-desc": ("Newest First", "created_at", True),
    "date-asc": ("Oldest First", "created_at", False),
    "title-asc": ("Title: A to Z", "title", False),
    "title-desc": ("Title: Z to A", "title", True),
    "id-asc": ("ID: Low to High", "item_id", False),
    "id-desc": ("ID: High to Low", "item_id", True),
}
DEFAULT_SORT = "price-desc"

PAGE_SIZES = (10, 20, 50, 100)
DEFAULT_PAGE_SIZE = 10


def extract_numeric_id(item_id: Optional[str]) -> int:
    """First run of digits in an item id ("item-123" -> 123), 0 if none"""
    match = re.search(r"\d+", item_id or "")
    return int(match.group()) if match else 0


def _price_number(value) -> Optional[float]:
    """Prices sent as text ("120", "$1,200.00") still sort by amount"""
    if isinstance(value, str):
        try:
            return float(value.replace("$", "").replace(",", "").strip())
        except ValueError:
            return None
    return value


def _sort_value(item: Item, field: str) -> Any:
    if field == "item_id":
        return extract_numeric_id(item.item_id)
    if field == "title":
        title = item.title or item.item_title
        return title.lower() if title else None
    if field == "price":
        price = _price_number(item.price)
        if price is not None:
            return price
        return item.value_estimate.max_value if item.value_estimate else None
    if field == "created_at":
        value = item.created_at
        if isinstance(value, str):
            return value or None
        return value
    return item.get(field)


def sort_items(items: Iterable[Item], sort: Optional[str]) -> Tuple[List[Item], str]:
    """
    Sort items by one of SORT_OPTIONS (unknown keys fall back to price-desc).

    Items missing the sort value always go last.
    """
    if sort not in SORT_OPTIONS:
        sort = DEFAULT_SORT
    _, field, descending = SORT_OPTIONS[sort]

    items = list(items)
    present = [i for i in items if _sort_value(i, field) is not None]
    missing = [i for i in items if _sort_value(i, field) is None]

    try:
        present.sort(key=lambda i: _sort_value(i, field), reverse=descending)
    except TypeError:
        # mixed epoch numbers and ISO strings
        present.sort(key=lambda i: str(_sort_value(i, field)), reverse=descending)

    return present + missing, sort


@dataclass
class Page:
    items: List[Item]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def paginate(items: List[Item], page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE) -> Page:
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        page_size = DEFAULT_PAGE_SIZE
    if page_size not in PAGE_SIZES:
        page_size = DEFAULT_PAGE_SIZE

    total = len(items)
    pages = max(1, math.ceil(total / page_size))
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(1, page), pages)

    start = (page - 1) * page_size
    return Page(items=items[start:start + page_size], page=page, page_size=page_size, total=total)


def finalized_items(items: Iterable[Item]) -> List[Item]:
    """Items whose descriptions have been generated"""
    return [item for item in items if item.description]


def parse_selected_ids(values: Iterable[str]) -> List[str]:
    """Selected item ids from the table's checkboxes, order kept, blanks and repeats dropped"""
    seen = []
    for value in values:
        value = (value or "").strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def query_string(params: Mapping[str, Any], **overrides) -> str:
    """Current table query with some parameters replaced (for sort/page links)"""
    merged = {k: v for k, v in params.items() if v not in (None, "")}
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return urlencode(merged)
