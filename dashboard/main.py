#!/usr/bin/env python3
"""
Lotdesk - staff dashboard for the jewelry auction backend
dashboard/main.py

Server-rendered pages over the auction REST API. Every backend call is made
with the signed-in user's Cognito ID token.
"""
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from auction_api import BackendError, __version__, get_config
from dashboard.auth import cognito_auth
from dashboard.auth.cognito_auth import AuthMiddleware
from dashboard.routes import admin, auctions, batches, items, uploads, web
from dashboard.templating import render_template

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(format="%(message)s", stream=sys.stdout, level=LOG_LEVEL)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger("lotdesk.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    for problem in config.validate():
        log.warning("config_problem", problem=problem)
    log.info("lotdesk_started", api=config.api_base_url, version=__version__)
    yield
    log.info("lotdesk_stopped")


STATIC_DIR = Path(__file__).resolve().parent / "static"

app = FastAPI(
    title="Lotdesk",
    description="Staff dashboard for jewelry auctions",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(AuthMiddleware)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(cognito_auth.router)
app.include_router(web.router)
app.include_router(auctions.router)
app.include_router(items.router)
app.include_router(uploads.router)
app.include_router(batches.router)
app.include_router(admin.router)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    """Backend failures no page handled itself"""
    if exc.status_code == 401:
        log.info("backend_session_expired", path=request.url.path)
        response = RedirectResponse(url="/login?error=session_expired", status_code=302)
        response.delete_cookie(cognito_auth.JWT_COOKIE_NAME, path="/")
        response.delete_cookie(cognito_auth.TOKEN_COOKIE_NAME, path="/")
        return response

    status_code = exc.status_code if exc.status_code in (403, 404) else 502
    log.warning("backend_error", path=request.url.path, status=exc.status_code, error=exc.message)
    return render_template("error.html", {
        "status_code": status_code,
        "message": exc.message,
    }, request, status_code=status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if request.url.path.startswith("/auth/"):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return render_template("error.html", {
        "status_code": exc.status_code,
        "message": exc.detail,
    }, request, status_code=exc.status_code)


def run():
    """Console entry point: serve the dashboard with uvicorn"""
    uvicorn.run(
        "dashboard.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
