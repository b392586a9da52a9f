"""
View models for the records owned by the auction backend.

The backend adds properties freely, so every model keeps unknown fields
(``extra="allow"``) and only the fields the dashboard reads are declared.
Display fields are typed loosely: a ring size may arrive as ``7`` or ``"7"``
and a weight as ``12.5`` or ``"12.5 g"``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Timestamp = Union[int, float, str, None]


class BackendModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)


class ValueEstimate(BackendModel):
    min_value: float = 0
    max_value: float = 0
    currency: str = "USD"

    def display(self) -> str:
        return f"{self.currency} {self.min_value:g}-{self.max_value:g}"


class Auction(BackendModel):
    auction_id: str
    name: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Timestamp = None
    updated_at: Timestamp = None
    item_count: Optional[int] = None


# Properties rendered by fixed inventory columns or never shown in the table
_FIXED_ITEM_FIELDS = {
    "item_id", "auction_id", "marker_id", "description", "created_by",
    "created_at", "updated_at", "images", "primaryImage", "title",
    "item_title", "value_estimate", "price",
}

# Common jewelry properties, shown first when present
COMMON_ITEM_PROPERTIES = [
    ("jewelry_type", "Type"),
    ("material", "Material"),
    ("size", "Size"),
    ("weight", "Weight"),
    ("color", "Color"),
    ("condition", "Condition"),
]


class Item(BackendModel):
    item_id: str
    auction_id: Optional[str] = None
    marker_id: Optional[str] = None
    title: Optional[str] = None
    item_title: Optional[str] = None
    description: Optional[str] = None
    price: Union[float, str, None] = None
    created_by: Optional[str] = None
    created_at: Timestamp = None
    updated_at: Timestamp = None
    primaryImage: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    jewelry_type: Optional[str] = None
    material: Optional[str] = None
    size: Optional[str] = None
    weight: Union[float, str, None] = None
    value_estimate: Optional[ValueEstimate] = None

    @property
    def display_title(self) -> str:
        return self.title or self.item_title or f"Item {self.marker_id or ''}".strip()

    @property
    def primary_image(self) -> Optional[str]:
        if self.primaryImage:
            return self.primaryImage
        return self.images[0] if self.images else None

    @property
    def display_value(self) -> str:
        if self.value_estimate:
            return self.value_estimate.display()
        if isinstance(self.price, str):
            return self.price
        if self.price:
            return f"${self.price:.2f}"
        return ""

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a declared or extra property by name"""
        if key in type(self).model_fields:
            value = getattr(self, key)
        else:
            value = (self.model_extra or {}).get(key)
        return default if value is None else value

    def scalar_properties(self) -> Dict[str, Any]:
        """Declared and extra properties that hold plain values"""
        data = self.model_dump()
        return {
            key: value for key, value in data.items()
            if value is not None and not isinstance(value, (dict, list))
        }

    @classmethod
    def extra_columns(cls, items: List["Item"]) -> List[tuple]:
        """
        Dynamic inventory columns taken from the first item's properties.

        Common jewelry properties come first in a fixed order, then any other
        scalar property the backend sent, titled from its snake_case name.
        """
        if not items:
            return []

        first = items[0].scalar_properties()
        columns = []
        seen = set(_FIXED_ITEM_FIELDS)

        for key, header in COMMON_ITEM_PROPERTIES:
            if key in first:
                columns.append((key, header))
                seen.add(key)

        for key in first:
            if key in seen:
                continue
            header = " ".join(word[:1].upper() + word[1:] for word in key.split("_"))
            columns.append((key, header))
            seen.add(key)

        return columns


class StagedItemMetadata(BackendModel):
    weight_grams: Optional[float] = None
    markings: List[str] = Field(default_factory=list)


class StagedItem(BackendModel):
    """An AI-generated item awaiting review before it is created"""
    item_index: int = 0
    images: List[str] = Field(default_factory=list)
    title: str = ""
    description: str = ""
    value_estimate: ValueEstimate = Field(default_factory=ValueEstimate)
    metadata: StagedItemMetadata = Field(default_factory=StagedItemMetadata)


class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (BatchStatus.PENDING, BatchStatus.PROCESSING)


class RequestCounts(BackendModel):
    total: int = 0
    completed: int = 0
    failed: int = 0


class Batch(BackendModel):
    batch_id: str
    status: Union[BatchStatus, str] = Field(BatchStatus.PENDING, union_mode="left_to_right")
    created_at: Timestamp = None
    updated_at: Timestamp = None
    request_counts: RequestCounts = Field(default_factory=RequestCounts)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def status_label(self) -> str:
        return self.status.value if isinstance(self.status, BatchStatus) else str(self.status)

    @property
    def is_terminal(self) -> bool:
        """Statuses the dashboard does not know are treated as final"""
        if isinstance(self.status, BatchStatus):
            return self.status.is_terminal
        return True

    @property
    def progress(self) -> int:
        if self.request_counts.total == 0:
            return 0
        return round(self.request_counts.completed / self.request_counts.total * 100)

    @property
    def auction_id(self) -> Optional[str]:
        return self.metadata.get("auction_id")


class User(BackendModel):
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = ""
    is_admin: bool = False
    created_at: Timestamp = None

    def matches(self, query: str) -> bool:
        query = query.lower()
        return (
            query in (self.username or "").lower()
            or query in (self.email or "").lower()
            or query in self.user_id.lower()
        )


class ImageRef(BackendModel):
    index: int
    imageKey: str


class ImageGroup(BackendModel):
    marker_id: str
    images: List[ImageRef] = Field(default_factory=list)


class UploadedImage(BackendModel):
    s3Key: str
    index: int
