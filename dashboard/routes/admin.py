"""
Administrator pages: user management
"""
import structlog
from fastapi import APIRouter, Depends, Form, Request

from auction_api import AuctionApiClient, BackendError
from dashboard.auth.cognito_auth import require_admin
from dashboard.deps import get_api
from dashboard.templating import redirect_with, render_template

log = structlog.get_logger("lotdesk.admin")

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("")
async def admin_home(request: Request):
    return render_template("admin_home.html", {}, request)


@router.get("/users")
async def users_page(request: Request, api: AuctionApiClient = Depends(get_api)):
    query = (request.query_params.get("q") or "").strip()
    users, error = [], request.query_params.get("error")
    try:
        users = await api.get_users()
    except BackendError as e:
        if e.is_auth_failure:
            raise
        error = e.message or "Failed to fetch users"

    if query:
        users = [u for u in users if u.matches(query)]

    return render_template("admin_users.html", {
        "users": users,
        "q": query,
        "error": error,
    }, request)


@router.post("/users/{user_id}")
async def set_admin(
    request: Request,
    user_id: str,
    is_admin: str = Form("false"),
    api: AuctionApiClient = Depends(get_api),
):
    """Grant or revoke administrator access"""
    grant = is_admin.lower() in ("1", "true", "on", "yes")
    try:
        await api.update_user(user_id, is_admin=grant)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with("/admin/users", error=e.message or "Failed to update user")

    log.info("user_admin_changed", user_id=user_id, is_admin=grant, by=request.state.user.get("sub"))
    message = "Administrator access granted" if grant else "Administrator access revoked"
    return redirect_with("/admin/users", notice=message)


@router.post("/users/{user_id}/delete")
async def delete_user(request: Request, user_id: str, api: AuctionApiClient = Depends(get_api)):
    try:
        await api.delete_user(user_id)
    except BackendError as e:
        if e.is_auth_failure:
            raise
        return redirect_with("/admin/users", error=e.message or "Failed to delete user")

    log.info("user_deleted", user_id=user_id, by=request.state.user.get("sub"))
    return redirect_with("/admin/users", notice="User deleted successfully")
