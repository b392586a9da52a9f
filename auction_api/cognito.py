"""
Staff sign-in against the Cognito user pool.

Talks to the user pool's JSON API directly:

  1. InitiateAuth (USER_PASSWORD_AUTH) exchanges username + password for tokens
  2. SignUp registers a new staff account (email attribute)
  3. ConfirmSignUp activates it with the emailed code

The ID token is what the auction backend accepts as a bearer token.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx
import jwt

from .config import BackendConfig, get_config
from .errors import CognitoError

logger = logging.getLogger(__name__)

TARGET_PREFIX = "AWSCognitoIdentityProviderService"


@dataclass
class CognitoTokens:
    id_token: str
    access_token: str = ""
    refresh_token: str = ""
    expires_in: int = 3600


async def cognito_request(
    action: str,
    payload: dict,
    config: Optional[BackendConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    """POST one action to the user pool and return the decoded body"""
    config = config or get_config()
    if not config.cognito_client_id:
        raise CognitoError("NotConfigured", "Sign-in is not configured. Set COGNITO_CLIENT_ID in .env")

    headers = {
        "Content-Type": "application/x-amz-json-1.1",
        "X-Amz-Target": f"{TARGET_PREFIX}.{action}",
    }
    body = {"ClientId": config.cognito_client_id, **payload}

    try:
        if client is not None:
            response = await client.post(config.cognito_endpoint, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=config.timeout) as http:
                response = await http.post(config.cognito_endpoint, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Cognito {action} request failed: {e}")
        raise CognitoError("NetworkError", "Could not reach the sign-in service")

    try:
        data = response.json()
    except ValueError:
        data = {}

    if response.status_code != 200:
        # "__type" looks like "NotAuthorizedException" or "prefix#NotAuthorizedException"
        code = str(data.get("__type", "UnknownError")).split("#")[-1]
        message = data.get("message") or data.get("Message") or f"Sign-in service error: {response.status_code}"
        logger.warning(f"Cognito {action} rejected: {code}")
        raise CognitoError(code, message)

    return data


async def sign_in(
    username: str,
    password: str,
    config: Optional[BackendConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> CognitoTokens:
    data = await cognito_request("InitiateAuth", {
        "AuthFlow": "USER_PASSWORD_AUTH",
        "AuthParameters": {"USERNAME": username, "PASSWORD": password},
    }, config=config, client=client)

    if data.get("ChallengeName"):
        # NEW_PASSWORD_REQUIRED and MFA challenges are finished in the hosted UI
        raise CognitoError(data["ChallengeName"], "Additional sign-in steps are required for this account")

    result = data.get("AuthenticationResult") or {}
    if not result.get("IdToken"):
        raise CognitoError("NoIdToken", "No authentication token found")

    return CognitoTokens(
        id_token=result["IdToken"],
        access_token=result.get("AccessToken", ""),
        refresh_token=result.get("RefreshToken", ""),
        expires_in=int(result.get("ExpiresIn", 3600)),
    )


async def sign_up(
    username: str,
    password: str,
    email: str,
    config: Optional[BackendConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    return await cognito_request("SignUp", {
        "Username": username,
        "Password": password,
        "UserAttributes": [{"Name": "email", "Value": email}],
    }, config=config, client=client)


async def confirm_sign_up(
    username: str,
    code: str,
    config: Optional[BackendConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    return await cognito_request("ConfirmSignUp", {
        "Username": username,
        "ConfirmationCode": code,
    }, config=config, client=client)


def id_token_claims(id_token: str) -> dict:
    """
    Read the claims of an ID token without verifying its signature.

    The auction backend verifies every token it receives; the dashboard only
    needs the username, email and group membership for display and routing.
    """
    try:
        return jwt.decode(id_token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return {}


def token_groups(claims: dict) -> List[str]:
    groups = claims.get("cognito:groups") or []
    if isinstance(groups, str):
        groups = [groups]
    return list(groups)
