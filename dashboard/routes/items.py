"""
Inventory and item pages
dashboard/routes/items.py
"""
import structlog
from fastapi import APIRouter, Depends, Form, Request

from auction_api import AuctionApiClient, BackendError
from auction_api.models import Item
from dashboard import inventory
from dashboard.deps import get_api
from dashboard.templating import local_path, redirect_with, render_template

log = structlog.get_logger("lotdesk.items")

router = APIRouter(tags=["items"])


@router.get("/inventory")
async def inventory_page(request: Request, api: AuctionApiClient = Depends(get_api)):
    """All items: sortable, paginated, with checkboxes for assigning to an auction"""
    params = request.query_params
    items, auctions = [], []
    error = params.get("error")
    try:
        items = await api.get_items()
        auctions = await api.get_auctions()
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("inventory_fetch_failed", error=e.message, status=e.status_code)
        error = e.message or "Failed to fetch items"

    ordered, sort = inventory.sort_items(items, params.get("sort"))
    page = inventory.paginate(ordered, params.get("page", 1), params.get("page_size", inventory.DEFAULT_PAGE_SIZE))
    current = {"sort": sort, "page": page.page, "page_size": page.page_size}

    return render_template("inventory.html", {
        "page": page,
        "columns": Item.extra_columns(items),
        "auctions": auctions,
        "sort": sort,
        "sort_options": inventory.SORT_OPTIONS,
        "page_sizes": inventory.PAGE_SIZES,
        "query": lambda **overrides: inventory.query_string(current, **overrides),
        "error": error,
    }, request)


@router.post("/inventory/assign")
async def assign_items(request: Request, api: AuctionApiClient = Depends(get_api)):
    """Add the checked items to the chosen auction"""
    form = await request.form()
    auction_id = (form.get("auction_id") or "").strip()
    item_ids = inventory.parse_selected_ids(form.getlist("item_ids"))
    back = local_path(form.get("back"), "/inventory")

    if not item_ids:
        return redirect_with(back, error="Select at least one item")
    if not auction_id:
        return redirect_with(back, error="Choose an auction")

    try:
        await api.add_items_to_auction(auction_id, item_ids)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(back, error=e.message or "Failed to add items to auction")

    log.info("items_assigned", auction_id=auction_id, count=len(item_ids))
    noun = "item" if len(item_ids) == 1 else "items"
    return redirect_with(back, notice=f"Added {len(item_ids)} {noun} to the auction")


@router.get("/items/{item_id}")
async def item_detail(request: Request, item_id: str, api: AuctionApiClient = Depends(get_api)):
    item = await api.get_item(item_id)
    return render_template("item_detail.html", {
        "item": item,
        "properties": item.scalar_properties(),
    }, request)


@router.post("/items/{item_id}")
async def update_item(
    item_id: str,
    item_title: str = Form(""),
    description: str = Form(""),
    api: AuctionApiClient = Depends(get_api),
):
    target = f"/items/{item_id}"
    if not item_title.strip():
        return redirect_with(target, error="Title is required")
    try:
        await api.update_item(item_id, item_title=item_title.strip(), description=description.strip())
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(target, error=e.message or "Failed to update item")
    return redirect_with(target, notice="Item updated successfully")


@router.post("/items/{item_id}/delete")
async def delete_item(item_id: str, back: str = Form("/inventory"), api: AuctionApiClient = Depends(get_api)):
    back = local_path(back, "/inventory")
    try:
        await api.delete_item(item_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(back, error=e.message or "Failed to delete item")

    log.info("item_deleted", item_id=item_id)
    return redirect_with(back, notice="Item deleted successfully")
