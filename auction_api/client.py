"""
Async REST client for the auction backend.

Every endpoint the dashboard uses goes through ``AuctionApiClient``. The
client holds no state between calls: each method sends one request with the
caller's identity token and returns the decoded body (or raises
``BackendError``).
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import BackendConfig, get_config
from .errors import BackendError, NotAuthenticatedError
from .models import Auction, Batch, ImageGroup, Item, StagedItem, UploadedImage, User

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _items_from(data: Any) -> list:
    """The backend answers list endpoints either bare or wrapped in ``items``"""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    return []


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"API error: {response.status_code}"


def _parse(model: Type[M], data: Any, path: str) -> M:
    """Validate one record, reporting a malformed one as a backend failure"""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Unexpected {model.__name__} from {path}: {e.error_count()} invalid field(s)")
        raise BackendError(f"Invalid response from {path}")


def _parse_all(model: Type[M], records: Iterable[Any], path: str) -> List[M]:
    return [_parse(model, record, path) for record in records]


class AuctionApiClient:
    """
    Client for one signed-in user.

    Usage:
        async with AuctionApiClient(token) as api:
            auctions = await api.get_auctions()

    Pass ``http_client`` to share a connection pool or to substitute a mock
    transport; the client only closes connections it opened itself.
    """

    def __init__(
        self,
        token: Optional[str],
        config: Optional[BackendConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.config = config or get_config()
        self._http = http_client
        self._owns_http = http_client is None

    async def __aenter__(self) -> "AuctionApiClient":
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_http = True
        return self._http

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            raise NotAuthenticatedError()
        return {"Authorization": f"Bearer {self.token}"}

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.config.api_base_url}{path}"
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"{method} {path} timed out after {self.config.timeout}s")
            raise BackendError(f"Request timed out after {self.config.timeout} seconds")
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendError(f"Could not reach the auction service: {e}")

    async def _fetch(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        headers = self._auth_headers()
        headers["Content-Type"] = "application/json"

        response = await self._send(method, path, headers=headers, json=body, params=params)

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise BackendError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise BackendError(f"Invalid response from {path}", status_code=response.status_code)

    # ========== AUCTIONS ==========

    async def get_auctions(self) -> List[Auction]:
        data = await self._fetch("GET", "/auctions")
        if isinstance(data, dict) and "auctions" in data:
            data = data["auctions"]
        return _parse_all(Auction, _items_from(data), "/auctions")

    async def get_auction(self, auction_id: str) -> Auction:
        data = await self._fetch("GET", f"/auctions/{auction_id}")
        if isinstance(data, dict) and isinstance(data.get("auction"), dict):
            data = data["auction"]
        return _parse(Auction, data, f"/auctions/{auction_id}")

    async def create_auction(
        self,
        name: str,
        start_date: str,
        end_date: str,
        created_by: Optional[str] = None,
    ) -> dict:
        auction_id = f"auction-{uuid.uuid4()}"
        logger.info(f"Creating auction {auction_id}: {name}")
        return await self._fetch("POST", "/auctions", body={
            "auction_id": auction_id,
            "name": name,
            "start_date": start_date,
            "end_date": end_date,
            "created_by": created_by or "unknown-user",
        })

    async def update_auction(
        self,
        auction_id: str,
        name: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        updates = {
            key: value for key, value in
            (("name", name), ("start_date", start_date), ("end_date", end_date))
            if value is not None
        }
        return await self._fetch("PUT", f"/auctions/{auction_id}", body=updates)

    async def delete_auction(self, auction_id: str) -> dict:
        return await self._fetch("DELETE", f"/auctions/{auction_id}")

    async def export_auction_csv(self, auction_id: str) -> bytes:
        """Download the backend-generated CSV of an auction's items"""
        response = await self._send(
            "GET", f"/auctions/{auction_id}/export", headers=self._auth_headers()
        )
        if not response.is_success:
            raise BackendError(
                f"Failed to export CSV: {response.status_code}",
                status_code=response.status_code,
            )
        return response.content

    async def export_catalog(self, auction_id: str, platform: str) -> str:
        """Ask the backend to build a platform catalog; returns its download URL"""
        data = await self._fetch(
            "POST", f"/auctions/{auction_id}/export-catalog", body={"platform": platform}
        )
        download_url = data.get("download_url") if isinstance(data, dict) else None
        if not download_url:
            raise BackendError("No download URL received")
        return download_url

    async def add_items_to_auction(self, auction_id: str, item_ids: Iterable[str]) -> dict:
        return await self._fetch(
            "POST", f"/auctions/{auction_id}/items", body={"item_ids": list(item_ids)}
        )

    # ========== ITEMS ==========

    async def get_auction_items(self, auction_id: str) -> Tuple[Optional[Auction], List[Item]]:
        """Items of one auction, plus the auction when the backend includes it"""
        data = await self._fetch("GET", f"/auctions/{auction_id}/items")
        auction = None
        if isinstance(data, dict) and isinstance(data.get("auction"), dict):
            auction = _parse(Auction, data["auction"], f"/auctions/{auction_id}/items")
        return auction, _parse_all(Item, _items_from(data), f"/auctions/{auction_id}/items")

    async def get_items(self, auction_id: Optional[str] = None) -> List[Item]:
        if auction_id:
            _, items = await self.get_auction_items(auction_id)
            return items
        data = await self._fetch("GET", "/items")
        return _parse_all(Item, _items_from(data), "/items")

    async def get_item(self, item_id: str) -> Item:
        data = await self._fetch("GET", f"/items/{item_id}")
        if isinstance(data, dict) and isinstance(data.get("item"), dict):
            data = data["item"]
        return _parse(Item, data, f"/items/{item_id}")

    async def create_item(
        self,
        auction_id: str,
        item_title: str,
        marker_id: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> dict:
        return await self._fetch("POST", "/items", body={
            "item_id": f"item-{uuid.uuid4()}",
            "auction_id": auction_id,
            "marker_id": marker_id or None,
            "item_title": item_title,
            "description": description or "",
            "created_by": created_by or "unknown-user",
        })

    async def create_items(
        self,
        items: List[StagedItem],
        auction_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> dict:
        """Create reviewed staged items in one request"""
        logger.info(f"Creating {len(items)} reviewed items (auction={auction_id})")
        return await self._fetch("POST", "/createItems", body={
            "items": [item.model_dump() for item in items],
            "auction_id": auction_id,
            "created_by": created_by or "unknown-user",
        })

    async def update_item(
        self,
        item_id: str,
        item_title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> dict:
        updates = {}
        if item_title is not None:
            updates["item_title"] = item_title
        if description is not None:
            updates["description"] = description
        return await self._fetch("PUT", f"/items/{item_id}", body=updates)

    async def delete_item(self, item_id: str) -> dict:
        return await self._fetch("DELETE", f"/items/{item_id}")

    # ========== IMAGES & AI PROCESSING ==========

    async def get_image_upload_url(self, file_name: str, file_type: str) -> Tuple[str, str]:
        """Returns (presigned_url, s3_key) for one image upload"""
        data = await self._fetch(
            "POST", "/images/getPresignedUrl",
            body={"fileName": file_name, "fileType": file_type},
        )
        try:
            return data["presignedUrl"], data["s3Key"]
        except (KeyError, TypeError):
            raise BackendError("Upload URL response is missing presignedUrl or s3Key")

    async def upload_image_to_s3(self, presigned_url: str, content: bytes, content_type: str) -> None:
        # The presigned URL carries its own authorization
        try:
            response = await self.http.put(
                presigned_url, content=content, headers={"Content-Type": content_type}
            )
        except httpx.HTTPError as e:
            logger.error(f"Image upload failed: {e}")
            raise BackendError(f"Failed to upload image: {e}")
        if not response.is_success:
            raise BackendError(
                f"Failed to upload image: {response.status_code}",
                status_code=response.status_code,
            )

    async def stage_items(
        self,
        num_items: int,
        views_per_item: int,
        images: List[UploadedImage],
        metadata: Optional[Dict[str, str]] = None,
    ) -> List[StagedItem]:
        """Run AI processing over uploaded photos; returns items to review"""
        body: Dict[str, Any] = {
            "num_items": num_items,
            "views_per_item": views_per_item,
            "images": [img.model_dump() for img in images],
        }
        if metadata:
            body["metadata"] = metadata
        data = await self._fetch("POST", "/stageItems", body=body)
        return _parse_all(StagedItem, _items_from(data), "/stageItems")

    async def group_images(self, s3_keys: Iterable[str]) -> List[ImageGroup]:
        data = await self._fetch(
            "POST", "/groupImages", body={"images": [{"s3Key": key} for key in s3_keys]}
        )
        groups = data.get("groups", []) if isinstance(data, dict) else data
        return _parse_all(ImageGroup, groups or [], "/groupImages")

    async def finalize_items(self, payload: dict) -> dict:
        """Submit regrouped images; payload comes from grouping.finalize_payload"""
        return await self._fetch("POST", "/finalizeItems", body=payload)

    # ========== BATCHES ==========

    async def get_batches(
        self, limit: int = 10, after: Optional[str] = None
    ) -> Tuple[List[Batch], Optional[str]]:
        """One page of batches and the token for the next page (None at the end)"""
        params: Dict[str, Any] = {"limit": limit}
        if after:
            params["after"] = after
        data = await self._fetch("GET", "/batches", params=params)
        if isinstance(data, list):
            return _parse_all(Batch, data, "/batches"), None
        if not isinstance(data, dict):
            return [], None
        batches = _parse_all(Batch, data.get("batches") or [], "/batches")
        next_token = (data.get("pagination") or {}).get("next_token") or None
        return batches, next_token

    async def get_batch(self, batch_id: str) -> Batch:
        data = await self._fetch("GET", f"/batches/{batch_id}")
        return _parse(Batch, data, f"/batches/{batch_id}")

    async def get_batch_results(self, batch_id: str) -> List[StagedItem]:
        data = await self._fetch("GET", f"/batches/{batch_id}/results")
        return _parse_all(StagedItem, _items_from(data), f"/batches/{batch_id}/results")

    async def cancel_batch(self, batch_id: str) -> dict:
        logger.info(f"Cancelling batch {batch_id}")
        return await self._fetch("POST", f"/batches/{batch_id}/cancel")

    # ========== USERS ==========

    async def get_users(self) -> List[User]:
        data = await self._fetch("GET", "/users")
        if isinstance(data, dict) and "users" in data:
            data = data["users"]
        return _parse_all(User, _items_from(data), "/users")

    async def update_user(self, user_id: str, is_admin: bool) -> dict:
        return await self._fetch("PUT", f"/users/{user_id}", body={"is_admin": is_admin})

    async def delete_user(self, user_id: str) -> dict:
        return await self._fetch("DELETE", f"/users/{user_id}")
