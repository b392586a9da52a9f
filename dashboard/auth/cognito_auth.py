#!/usr/bin/env python3
"""
Lotdesk - Cognito sign-in + JWT session
dashboard/auth/cognito_auth.py

Flow:
  1. Staff submit username + password on /login
  2. We exchange them with the Cognito user pool for an ID token
  3. The ID token is kept in an httponly cookie; it is the bearer token
     for every auction backend call
  4. A signed session JWT (username, email, admin flag) is issued as a
     second httponly cookie
  5. All pages except /login, /signup*, /health and /static require both
"""
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import jwt
import structlog
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from auction_api import CognitoError, get_config
from auction_api import cognito
from dashboard.templating import redirect_with, render_template

load_dotenv()
log = structlog.get_logger("lotdesk.auth")

router = APIRouter(tags=["auth"])

# JWT config
JWT_SECRET = os.getenv('JWT_SECRET', '')
if not JWT_SECRET:
    # Sessions will not survive a restart
    JWT_SECRET = secrets.token_urlsafe(32)
    log.warning("jwt_secret_generated", hint="set JWT_SECRET in .env")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = int(os.getenv('JWT_EXPIRY_HOURS', '12'))
JWT_COOKIE_NAME = "lotdesk_session"
TOKEN_COOKIE_NAME = "auth_token"
COOKIE_SECURE = os.getenv('COOKIE_SECURE', 'true').lower() in ('1', 'true', 'yes')

# Reasons shown on the login page for ?error=<code>
LOGIN_ERRORS = {
    "invalid_credentials": "Incorrect username or password.",
    "not_confirmed": "Your account is not confirmed yet. Enter the code from your email.",
    "challenge": "Additional sign-in steps are required for this account.",
    "unavailable": "The sign-in service is unavailable. Try again shortly.",
    "session_expired": "Your session has expired. Please sign in again.",
    "missing_params": "Enter your username and password.",
}


def create_jwt(user: dict) -> str:
    """Create a session JWT for an authenticated user"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user['username'],
        "email": user.get('email', ''),
        "is_admin": bool(user.get('is_admin', False)),
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_jwt(token: str) -> Optional[dict]:
    """Verify and decode a session JWT"""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def user_from_id_token(id_token: str) -> dict:
    """Username, email and admin flag from the ID token claims"""
    claims = cognito.id_token_claims(id_token)
    groups = cognito.token_groups(claims)
    return {
        "username": claims.get("cognito:username") or claims.get("username") or claims.get("sub", "unknown-user"),
        "email": claims.get("email", ""),
        "is_admin": get_config().admin_group in groups,
    }


def get_current_user(request: Request) -> Optional[dict]:
    """Extract current user from the session cookie"""
    token = request.cookies.get(JWT_COOKIE_NAME)
    if not token:
        return None
    return verify_jwt(token)


def get_id_token(request: Request) -> Optional[str]:
    return request.cookies.get(TOKEN_COOKIE_NAME)


async def require_auth(request: Request) -> dict:
    """Dependency: require authenticated user"""
    user = getattr(request.state, "user", None) or get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def require_admin(user: dict = Depends(require_auth)) -> dict:
    """Dependency: require an administrator"""
    if not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user


def _login_error_code(error: CognitoError) -> str:
    if error.code in ("NotAuthorizedException", "UserNotFoundException"):
        return "invalid_credentials"
    if error.code == "UserNotConfirmedException":
        return "not_confirmed"
    if error.code in ("NEW_PASSWORD_REQUIRED", "SMS_MFA", "SOFTWARE_TOKEN_MFA", "MFA_SETUP"):
        return "challenge"
    return "unavailable"


def _clear_session(response):
    response.delete_cookie(JWT_COOKIE_NAME, path="/")
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return response


# ========== ROUTES ==========

@router.get("/login")
async def login_page(request: Request):
    """Login page - public"""
    if get_current_user(request) and get_id_token(request):
        return RedirectResponse(url="/dashboard", status_code=302)
    error = request.query_params.get("error")
    return render_template("login.html", {
        "error": LOGIN_ERRORS.get(error, error),
    }, request)


@router.post("/login")
async def login(request: Request, username: str = Form(""), password: str = Form("")):
    """Exchange credentials for tokens and start a session"""
    username = username.strip()
    if not username or not password:
        return RedirectResponse(url="/login?error=missing_params", status_code=302)

    try:
        tokens = await cognito.sign_in(username, password)
    except CognitoError as e:
        code = _login_error_code(e)
        log.warning("login_failed", username=username, reason=e.code)
        if code == "not_confirmed":
            return RedirectResponse(url="/signup?" + urlencode({"confirm": username}), status_code=302)
        return RedirectResponse(url=f"/login?error={code}", status_code=302)

    user = user_from_id_token(tokens.id_token)
    response = RedirectResponse(url="/dashboard", status_code=302)
    response.set_cookie(
        key=JWT_COOKIE_NAME,
        value=create_jwt(user),
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=JWT_EXPIRY_HOURS * 3600,
        path="/",
    )
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=tokens.id_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=min(tokens.expires_in, JWT_EXPIRY_HOURS * 3600),
        path="/",
    )

    log.info("login_successful", username=user["username"], is_admin=user["is_admin"])
    return response


@router.get("/signup")
async def signup_page(request: Request):
    """Signup page - public. ?confirm=<username> shows the confirmation step"""
    return render_template("signup.html", {
        "confirm_username": request.query_params.get("confirm"),
    }, request)


@router.post("/signup")
async def signup(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
):
    username = username.strip()
    email = email.strip().lower()

    problem = None
    if not username or not email or not password:
        problem = "Username, email and password are required"
    elif password != confirm_password:
        problem = "Passwords do not match"

    if problem is None:
        try:
            await cognito.sign_up(username, password, email)
        except CognitoError as e:
            log.warning("signup_failed", username=username, reason=e.code)
            problem = e.message

    if problem:
        return render_template("signup.html", {
            "error": problem,
            "username": username,
            "email": email,
        }, request, status_code=400)

    log.info("signup_started", username=username)
    return redirect_with("/signup?" + urlencode({"confirm": username}), notice="Check your email for a confirmation code")


@router.post("/signup/confirm")
async def confirm_signup(request: Request, username: str = Form(""), code: str = Form("")):
    try:
        await cognito.confirm_sign_up(username.strip(), code.strip())
    except CognitoError as e:
        log.warning("signup_confirm_failed", username=username, reason=e.code)
        return render_template("signup.html", {
            "error": e.message,
            "confirm_username": username,
        }, request, status_code=400)

    log.info("signup_confirmed", username=username)
    return redirect_with("/login", notice="Account confirmed. Please sign in.")


@router.get("/logout")
async def logout():
    """Clear session cookies and redirect to login"""
    return _clear_session(RedirectResponse(url="/login", status_code=302))


@router.get("/auth/me")
async def auth_me(user: dict = Depends(require_auth)):
    """Get current authenticated user info"""
    return {
        "username": user["sub"],
        "email": user.get("email", ""),
        "is_admin": user.get("is_admin", False),
    }


# ========== AUTH MIDDLEWARE ==========

class AuthMiddleware(BaseHTTPMiddleware):
    """
    Require a session for every page.
    Public routes: /login, /signup*, /health, /static/*
    """

    PUBLIC_PATHS = ["/login", "/signup", "/signup/confirm", "/logout", "/health"]
    PUBLIC_PREFIXES = ["/static/"]

    async def dispatch(self, request: Request, call_next):
        path = request.url.path.rstrip("/") or "/"

        is_public = path in self.PUBLIC_PATHS or any(
            path.startswith(p) for p in self.PUBLIC_PREFIXES
        )

        if not is_public:
            user = get_current_user(request)
            token = get_id_token(request)
            if not user or not token:
                if path.startswith("/auth/"):
                    return JSONResponse(
                        status_code=401,
                        content={"detail": "Not authenticated"}
                    )
                response = RedirectResponse(url="/login", status_code=302)
                if user and not token:
                    response = RedirectResponse(url="/login?error=session_expired", status_code=302)
                return _clear_session(response)

            # Attach user and backend token to request state
            request.state.user = user
            request.state.token = token

        response = await call_next(request)
        return response
