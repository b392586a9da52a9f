"""
Listing platforms an auction catalog can be exported to.

The backend does the format translation; this module only describes each
platform to staff and names the downloaded files.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from auction_api.models import Item


@dataclass(frozen=True)
class Platform:
    id: str
    name: str
    description: str
    required_fields: List[str] = field(default_factory=list)
    optional_fields: List[str] = field(default_factory=list)
    notes: str = ""


SUPPORTED_PLATFORMS = [
    Platform(
        id="liveauctioneers",
        name="LiveAuctioneers",
        description="Export catalog in LiveAuctioneers CSV format",
        required_fields=["LotNum", "Title", "Description", "LowEst", "HighEst", "StartPrice"],
        optional_fields=["Condition", "Dimensions", "Weight", "Material", "ImageFile.1,...,ImageFile.20"],
        notes=(
            "LiveAuctioneers requires at least one image per item. Items without images "
            "will be included but may need manual image uploads on their platform."
        ),
    ),
]

_PLATFORMS_BY_ID = {p.id: p for p in SUPPORTED_PLATFORMS}


def get_platform(platform_id: Optional[str]) -> Optional[Platform]:
    return _PLATFORMS_BY_ID.get(platform_id or "")


def catalog_summary(items: Iterable[Item]) -> Dict[str, int]:
    """Item counts shown before exporting"""
    items = list(items)
    with_images = sum(1 for item in items if item.primary_image)
    return {
        "total": len(items),
        "with_images": with_images,
        "without_images": len(items) - with_images,
    }


def export_filename(auction_id: str, platform_id: str) -> str:
    return f"auction-{auction_id}-catalog-{platform_id}.csv"


def csv_filename(auction_id: str) -> str:
    return f"auction-{auction_id}-items.csv"
