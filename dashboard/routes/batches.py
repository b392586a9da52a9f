"""
AI batch processing pages
"""
import structlog
from fastapi import APIRouter, Depends, Request

from auction_api import AuctionApiClient, BackendError, get_config
from auction_api.models import BatchStatus
from dashboard.deps import get_api
from dashboard.templating import redirect_with, render_template

log = structlog.get_logger("lotdesk.batches")

router = APIRouter(prefix="/batches", tags=["batches"])

BATCHES_PER_PAGE = 10


@router.get("")
async def batch_list(request: Request, api: AuctionApiClient = Depends(get_api)):
    """Newest batches first, one page at a time (?after=<token>)"""
    after = request.query_params.get("after") or None
    batches, next_token, error = [], None, request.query_params.get("error")
    try:
        batches, next_token = await api.get_batches(limit=BATCHES_PER_PAGE, after=after)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        error = e.message or "Failed to fetch batches"

    return render_template("batches.html", {
        "batches": batches,
        "next_token": next_token,
        "after": after,
        "error": error,
    }, request)


@router.post("/{batch_id}/cancel")
async def cancel_batch(batch_id: str, api: AuctionApiClient = Depends(get_api)):
    try:
        await api.cancel_batch(batch_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with(f"/batches/{batch_id}", error=e.message or "Failed to cancel batch")

    log.info("batch_cancelled", batch_id=batch_id)
    return redirect_with(f"/batches/{batch_id}", notice="Batch cancelled")


@router.get("/{batch_id}")
async def batch_status(request: Request, batch_id: str, api: AuctionApiClient = Depends(get_api)):
    """
    Status of one batch.

    While the batch is pending or processing the page refreshes itself;
    once it completes the staged results are shown for review.
    """
    batch = await api.get_batch(batch_id)

    results, error = [], request.query_params.get("error")
    if batch.status == BatchStatus.COMPLETED:
        try:
            results = await api.get_batch_results(batch_id)
        except BackendError as e:
            if e.is_auth_failure:
                raise
            error = e.message or "Failed to fetch batch results"

    return render_template("batch_status.html", {
        "batch": batch,
        "results": results,
        "refresh_seconds": None if batch.is_terminal else get_config().batch_poll_seconds,
        "error": error,
    }, request)
