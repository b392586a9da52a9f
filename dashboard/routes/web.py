#!/usr/bin/env python3
"""
Lotdesk Web Routes - home, dashboard and health
dashboard/routes/web.py
"""
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from auction_api import AuctionApiClient, BackendError
from dashboard.deps import get_api
from dashboard.templating import render_template

log = structlog.get_logger("lotdesk.web")

router = APIRouter(tags=["web"])


@router.get("/")
async def home():
    """Signed-in staff land on the dashboard; the middleware sends others to /login"""
    return RedirectResponse(url="/dashboard", status_code=302)


@router.get("/dashboard")
async def dashboard_page(request: Request, api: AuctionApiClient = Depends(get_api)):
    """Auctions list with the create-auction form"""
    auctions = []
    error = request.query_params.get("error")
    try:
        auctions = await api.get_auctions()
    except BackendError as e:
        log.warning("auctions_fetch_failed", error=e.message, status=e.status_code)
        if e.is_auth_failure:
            raise
        error = e.message or "Failed to fetch auctions"

    return render_template("dashboard.html", {
        "auctions": auctions,
        "error": error,
    }, request)


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
