#!/usr/bin/env python3
"""
Lotdesk Upload Routes - photo upload wizard and image regrouping
dashboard/routes/uploads.py

Wizard (per auction or straight into inventory):
  1. Configure: how many items, views per item, optional lot metadata
  2. Upload: one photo per item view, in capture order
  3. Stage: photos go to S3 and the backend drafts an item for each lot
  4. Review: staff edit the drafts, then create them

Grouping: the backend proposes which photos show the same lot, staff move
photos between groups, then the groups are finalized into items.
"""
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile

from auction_api import AuctionApiClient, BackendError
from auction_api.models import UploadedImage
from dashboard import grouping, lots
from dashboard.deps import current_username, get_api
from dashboard.templating import redirect_with, render_template

log = structlog.get_logger("lotdesk.uploads")

router = APIRouter(tags=["uploads"])


def _photos(form) -> List[UploadFile]:
    """Files actually chosen in the photos input (empty parts are dropped)"""
    return [f for f in form.getlist("photos") if isinstance(f, UploadFile) and f.filename]


def _done_url(auction_id: Optional[str]) -> str:
    return f"/auctions/{auction_id}" if auction_id else "/inventory"


async def _upload_photos(api: AuctionApiClient, photos: List[UploadFile]) -> List[str]:
    """Upload photos to S3 in order; returns their keys"""
    keys = []
    for photo in photos:
        content_type = photo.content_type or "image/jpeg"
        presigned_url, s3_key = await api.get_image_upload_url(photo.filename, content_type)
        await api.upload_image_to_s3(presigned_url, await photo.read(), content_type)
        keys.append(s3_key)
    log.info("photos_uploaded", count=len(keys))
    return keys


# ========== UPLOAD WIZARD ==========

def _upload_form(request: Request, auction_id: Optional[str], status_code: int = 200, **context):
    params = request.query_params
    lot_type = context.pop("lot_type", params.get("lot_type"))
    num_items, views = lots.clamp_capture_config(
        context.pop("num_items", params.get("num_items", 1)),
        context.pop("views_per_item", params.get("views_per_item", 1)),
    )
    return render_template("upload.html", {
        "auction_id": auction_id,
        "lot_types": lots.LOT_TYPES,
        "materials": lots.MATERIALS,
        "lot_type": lot_type,
        "material": context.pop("material", params.get("material")),
        "size_field": lots.size_field_for(lot_type),
        "num_items": num_items,
        "views_per_item": views,
        "max_views": lots.MAX_VIEWS_PER_ITEM,
        "expected": lots.expected_image_count(num_items, views),
        **context,
    }, request, status_code=status_code)


async def _stage(request: Request, api: AuctionApiClient, auction_id: Optional[str]):
    form = await request.form()
    num_items, views = lots.clamp_capture_config(form.get("num_items"), form.get("views_per_item"))
    lot_type = form.get("lot_type") or None
    material = form.get("material") or None
    photos = _photos(form)

    def form_again(error: str, status_code: int = 400):
        return _upload_form(
            request, auction_id, status_code=status_code,
            num_items=num_items, views_per_item=views,
            lot_type=lot_type, material=material, error=error,
        )

    try:
        lots.check_capture_complete(len(photos), num_items, views)
    except ValueError as e:
        return form_again(str(e))

    try:
        keys = await _upload_photos(api, photos)
        images = lots.reorder_images_by_item(
            [UploadedImage(s3Key=key, index=i) for i, key in enumerate(keys)],
            num_items, views,
        )
        metadata = lots.build_stage_metadata(lot_type, material, form.get("size_value") or None)
        staged = await api.stage_items(num_items, views, images, metadata)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("staging_failed", error=e.message, auction_id=auction_id)
        return form_again(e.message or "Failed to process images", status_code=502)

    log.info("items_staged", count=len(staged), auction_id=auction_id)
    return render_template("staged_review.html", {
        "auction_id": auction_id,
        "items": staged,
    }, request)


@router.get("/auctions/{auction_id}/upload")
async def auction_upload_page(request: Request, auction_id: str):
    return _upload_form(request, auction_id)


@router.post("/auctions/{auction_id}/upload")
async def auction_upload(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    return await _stage(request, api, auction_id)


@router.get("/inventory/upload")
async def inventory_upload_page(request: Request):
    return _upload_form(request, None)


@router.post("/inventory/upload")
async def inventory_upload(request: Request, api: AuctionApiClient = Depends(get_api)):
    return await _stage(request, api, None)


@router.post("/staged/create")
async def create_staged_items(request: Request, api: AuctionApiClient = Depends(get_api)):
    """Create the reviewed drafts as real items"""
    form = await request.form()
    auction_id = form.get("auction_id") or None
    try:
        count = max(0, int(form.get("count", 0)))
    except ValueError:
        count = 0
    items = lots.staged_items_from_form(form, count)

    if not items:
        return redirect_with(_done_url(auction_id), error="No items to create")

    try:
        await api.create_items(items, auction_id=auction_id, created_by=current_username(request))
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("staged_create_failed", error=e.message, auction_id=auction_id)
        return render_template("staged_review.html", {
            "auction_id": auction_id,
            "items": items,
            "error": e.message or "Failed to create items",
        }, request, status_code=502)

    log.info("staged_items_created", count=len(items), auction_id=auction_id)
    noun = "item" if len(items) == 1 else "items"
    return redirect_with(_done_url(auction_id), notice=f"Created {len(items)} {noun}")


# ========== IMAGE GROUPING ==========

def _grouping_page(request: Request, auction_id: Optional[str], groups, status_code: int = 200, **context):
    return render_template("grouping.html", {
        "auction_id": auction_id,
        "groups": groups,
        "groups_json": grouping.groups_to_json(groups),
        "image_count": grouping.image_count(groups),
        "new_group": grouping.NEW_GROUP,
        **context,
    }, request, status_code=status_code)


def _group_upload_form(request: Request, auction_id: Optional[str], status_code: int = 200, error=None):
    return render_template("group_upload.html", {
        "auction_id": auction_id,
        "error": error or request.query_params.get("error"),
    }, request, status_code=status_code)


async def _group(request: Request, api: AuctionApiClient, auction_id: Optional[str]):
    form = await request.form()
    photos = _photos(form)
    if not photos:
        return _group_upload_form(request, auction_id, status_code=400, error="Select at least one image")

    try:
        keys = await _upload_photos(api, photos)
        groups = await api.group_images(keys)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("grouping_failed", error=e.message, auction_id=auction_id)
        return _group_upload_form(request, auction_id, status_code=502, error=e.message or "Failed to group images")

    log.info("images_grouped", images=len(keys), groups=len(groups), auction_id=auction_id)
    return _grouping_page(request, auction_id, groups)


@router.get("/auctions/{auction_id}/group")
async def auction_group_page(request: Request, auction_id: str):
    return _group_upload_form(request, auction_id)


@router.post("/auctions/{auction_id}/group")
async def auction_group(request: Request, auction_id: str, api: AuctionApiClient = Depends(get_api)):
    return await _group(request, api, auction_id)


@router.get("/inventory/group")
async def inventory_group_page(request: Request):
    return _group_upload_form(request, None)


@router.post("/inventory/group")
async def inventory_group(request: Request, api: AuctionApiClient = Depends(get_api)):
    return await _group(request, api, None)


@router.post("/grouping/regroup")
async def regroup(request: Request):
    """
    Apply staff corrections to the proposed groups.

    Either one photo move (image_key, target, optional before_key) or the
    whole form of per-photo group selects (``group-<image key>`` fields).
    """
    form = await request.form()
    auction_id = form.get("auction_id") or None
    try:
        groups = grouping.groups_from_json(form.get("groups_json"))
    except ValueError as e:
        return _group_upload_form(request, auction_id, status_code=400, error=str(e))

    image_key = form.get("image_key")
    if image_key:
        groups = grouping.move_image(groups, image_key, form.get("target", ""), form.get("before_key") or None)
    else:
        assignments = {
            key[len("group-"):]: value
            for key, value in form.multi_items()
            if key.startswith("group-") and isinstance(value, str)
        }
        groups = grouping.apply_assignments(groups, assignments)

    return _grouping_page(request, auction_id, groups, notice="Groups updated")


@router.post("/grouping/finalize")
async def finalize_groups(request: Request, api: AuctionApiClient = Depends(get_api)):
    form = await request.form()
    auction_id = form.get("auction_id") or None
    try:
        groups = grouping.groups_from_json(form.get("groups_json"))
    except ValueError as e:
        return _group_upload_form(request, auction_id, status_code=400, error=str(e))

    if not groups:
        return _group_upload_form(request, auction_id, status_code=400, error="There are no grouped images to finalize")

    try:
        await api.finalize_items(grouping.finalize_payload(groups, auction_id))
    except BackendError as e:
        if e.is_auth_failure:
            raise
        log.warning("finalize_failed", error=e.message, auction_id=auction_id)
        return _grouping_page(request, auction_id, groups, status_code=502, error=e.message or "Failed to finalize items")

    log.info("groups_finalized", groups=len(groups), auction_id=auction_id)
    return redirect_with(_done_url(auction_id), notice=f"Finalized {len(groups)} item groups")
