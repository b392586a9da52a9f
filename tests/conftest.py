"""
Pytest configuration and fixtures
"""
import json
import os

# Settings are read at import time, so they must be in place first
os.environ["AUCTION_API_URL"] = "https://api.test"
os.environ["S3_BUCKET_URL"] = "https://images.test"
os.environ["COGNITO_CLIENT_ID"] = "test-client"
os.environ["COGNITO_ADMIN_GROUP"] = "admin"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["COOKIE_SECURE"] = "false"

import httpx
import jwt
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from auction_api import AuctionApiClient, reload_config
from dashboard.auth.cognito_auth import JWT_COOKIE_NAME, TOKEN_COOKIE_NAME, create_jwt
from dashboard.deps import get_api
from dashboard.main import app

reload_config()


def make_id_token(username="alice", email="alice@example.com", groups=None) -> str:
    """An unsigned-looking Cognito ID token; only its claims are read"""
    claims = {"cognito:username": username, "email": email, "sub": f"sub-{username}"}
    if groups is not None:
        claims["cognito:groups"] = groups
    return jwt.encode(claims, "not-the-cognito-key-but-long-enough-anyway", algorithm="HS256")


class FakeBackend:
    """
    Stand-in for the auction backend (and S3) behind httpx.MockTransport.

    Responses are registered per (method, path); unregistered routes answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, json=None, status=200, content=None, handler=None):
        self.routes[(method, path)] = (status, json, content, handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        status, body, content, handler = route
        if handler is not None:
            return handler(request)
        if content is not None:
            return httpx.Response(status, content=content)
        return httpx.Response(status, json=body if body is not None else {})

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def sent_json(self, method, path):
        """Body of the last request sent to a route"""
        return json.loads(self.calls(method, path)[-1].content)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def anonymous(backend):
    """Test client with no session cookies"""

    async def api_override(request: Request):
        async with backend.http_client() as http:
            async with AuctionApiClient(getattr(request.state, "token", None), http_client=http) as api:
                yield api

    app.dependency_overrides[get_api] = api_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _sign_in(client: TestClient, username: str, is_admin: bool) -> TestClient:
    client.cookies.set(JWT_COOKIE_NAME, create_jwt({
        "username": username,
        "email": f"{username}@example.com",
        "is_admin": is_admin,
    }))
    client.cookies.set(TOKEN_COOKIE_NAME, make_id_token(username))
    return client


@pytest.fixture
def staff(anonymous):
    """Test client signed in as a regular staff member"""
    return _sign_in(anonymous, "alice", is_admin=False)


@pytest.fixture
def admin(anonymous):
    """Test client signed in as an administrator"""
    return _sign_in(anonymous, "root", is_admin=True)


@pytest.fixture
def id_token():
    return make_id_token
