"""
Auction management pages
"""

from datetime import date
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response

from auction_api import AuctionApiClient, BackendError
from dashboard import platforms
from dashboard.deps import current_username, get_api
from dashboard.inventory import finalized_items
from dashboard.templating import redirect_with, render_template

log = structlog.get_logger("lotdesk.auctions")

router = APIRouter(prefix="/auctions", tags=["auctions"])


def check_auction_dates(name: str, start_date: str, end_date: str) -> Optional[str]:
    """Problem with a create/edit form, or None"""
    if not name.strip():
        return "Auction name is required"
    try:
        start = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)
    except ValueError:
        return "Start and end dates must be valid dates"
    if end < start:
        return "End date must be on or after the start date"
    return None


@router.post("")
async def create_auction(
    request: Request,
    name: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
    api: AuctionApiClient = Depends(get_api),
):
    problem = check_auction_dates(name, start_date, end_date)
    if problem:
        return redirect_with("/dashboard", error=problem)

    try:
        await api.create_auction(name.strip(), start_date, end_date, created_by=current_username(request))
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("auction_create_failed", error=e.message)
        return redirect_with("/dashboard", error=e.message or "Failed to create auction")

    log.info("auction_created", name=name.strip(), by=current_username(request))
    return redirect_with("/dashboard", notice="Auction created successfully")


@router.get("/{auction_id}")
async def auction_detail(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    auction = await api.get_auction(auction_id)
    items, error = [], request.query_params.get("error")
    try:
        items = await api.get_items(auction_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        error = e.message or "Failed to fetch items"

    return render_template("auction_detail.html", {
        "auction": auction,
        "items": items,
        "error": error,
    }, request)


@router.post("/{auction_id}")
async def update_auction(
    auction_id: str,
    name: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
    api: AuctionApiClient = Depends(get_api),
):
    target = f"/auctions/{auction_id}"
    problem = check_auction_dates(name, start_date, end_date)
    if problem:
        return redirect_with(target, error=problem)

    try:
        await api.update_auction(auction_id, name=name.strip(), start_date=start_date, end_date=end_date)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(target, error=e.message or "Failed to update auction")

    return redirect_with(target, notice="Auction updated successfully")


@router.post("/{auction_id}/delete")
async def delete_auction(auction_id: str, api: AuctionApiClient = Depends(get_api)):
    try:
        await api.delete_auction(auction_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with("/dashboard", error=e.message or "Failed to delete auction")

    log.info("auction_deleted", auction_id=auction_id)
    return redirect_with("/dashboard", notice="Auction deleted successfully")


@router.get("/{auction_id}/export.csv")
async def export_csv(auction_id: str, api: AuctionApiClient = Depends(get_api)):
    """Download the backend-generated CSV of the auction's items"""
    try:
        content = await api.export_auction_csv(auction_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(f"/auctions/{auction_id}", error=e.message)

    filename = platforms.csv_filename(auction_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _export_page(request: Request, auction_id: str, api: AuctionApiClient, **context):
    items, error = [], context.pop("error", None)
    try:
        items = await api.get_items(auction_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        error = error or e.message or "Failed to fetch items"

    return render_template("auction_export.html", {
        "auction_id": auction_id,
        "platforms": platforms.SUPPORTED_PLATFORMS,
        "summary": platforms.catalog_summary(items),
        "error": error or request.query_params.get("error"),
        **context,
    }, request)


@router.get("/{auction_id}/export")
async def export_catalog_page(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    selected = platforms.get_platform(request.query_params.get("platform"))
    return await _export_page(request, auction_id, api, selected=selected)


@router.post("/{auction_id}/export")
async def export_catalog(
    request: Request,
    auction_id: str,
    platform: str = Form(""),
    api: AuctionApiClient = Depends(get_api),
):
    selected = platforms.get_platform(platform)
    if selected is None:
        return await _export_page(request, auction_id, api, error="Please select a platform to export to")

    try:
        download_url = await api.export_catalog(auction_id, selected.id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return await _export_page(
            request, auction_id, api, selected=selected, error=e.message or "Failed to export catalog"
        )

    log.info("catalog_exported", auction_id=auction_id, platform=selected.id)
    return await _export_page(
        request, auction_id, api,
        selected=selected,
        download_url=download_url,
        download_name=platforms.export_filename(auction_id, selected.id),
        notice="Catalog exported successfully",
    )


@router.get("/{auction_id}/review")
async def processed_items(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    """Items produced by AI processing for this auction"""
    items = await api.get_items(auction_id)
    return render_template("items_review.html", {
        "auction_id": auction_id,
        "items": items,
        "title": "Processed Jewelry Items",
        "empty_message": "No processed items found",
    }, request)


@router.get("/{auction_id}/finalize")
async def finalized(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    """Items that have been finalized with generated descriptions"""
    items = finalized_items(await api.get_items(auction_id))
    return render_template("items_review.html", {
        "auction_id": auction_id,
        "items": items,
        "title": "Finalized Jewelry Items",
        "empty_message": "No finalized items found",
        "show_finalize_link": True,
    }, request)
