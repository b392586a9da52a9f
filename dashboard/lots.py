"""
Jewelry lot vocabulary and upload wizard helpers

Flow:
1. Staff choose how many items they are photographing and how many views each
2. Optional lot metadata (type, material, size/length) is picked from fixed lists
3. Photos are uploaded view by view, then reordered item by item for staging
4. The staged items come back for review and are rebuilt from the review form
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from auction_api.models import StagedItem, UploadedImage

MAX_VIEWS_PER_ITEM = 5

LOT_TYPES = [
    "Ring",
    "Bangle",
    "Watch",
    "Bracelet",
    "Anklet",
    "Armlet",
    "Pendant Necklace",
    "Chain",
    "Bolo Tie",
    "Brooch Necklace",
    "Locket Necklace",
    "Brooch",
    "Cameo",
    "Pin",
    "Hair Clip",
    "Money Clip",
    "Earrings",
    "Cuff Links",
    "Belt Buckle",
    "Liter",
    "Coin",
    "Medallion",
    "Ink Pen",
    "Needle Case",
    "Other Miscellaneous",
]

MATERIALS = [
    "XRF Analyzer Tested 999 Silver",
    "XRF Analyzer Tested Sterling/925 Silver",
    "XRF Analyzer Tested 900 Silver",
    "XRF Analyzer Tested 800 Silver",
    "XRF Analyzer Tested 22k Gold",
    "XRF Analyzer Tested 18k Gold",
    "XRF Analyzer Tested 14k Gold",
    "XRF Analyzer Tested 12k Gold",
    "XRF Analyzer Tested 10k Gold",
    "XRF Analyzer Tested Platinum",
]


def _steps(start: float, stop: float, step: float, suffix: str = "") -> List[str]:
    values = []
    current = start
    while current <= stop + 1e-9:
        values.append(f"{current:g}{suffix}")
        current += step
    return values


# 2.5 .. 13 in quarter sizes
RING_SIZES = _steps(2.5, 13, 0.25)

BANGLE_WATCH_DIAMETERS = _steps(2, 4.5, 0.25, " inch.") + ["5 inch."]

BRACELET_LENGTHS = _steps(6, 12, 0.25, " inch")

NECKLACE_LENGTHS = _steps(10, 24, 0.5, " inch")

OTHER_LENGTHS = ["1/2 inch", "1 inch", "1.5 inch", "2 inch"]

BANGLE_TYPES = {"Bangle", "Watch"}
BRACELET_TYPES = {"Bracelet", "Anklet", "Armlet"}
NECKLACE_TYPES = {"Pendant Necklace", "Chain", "Bolo Tie", "Brooch Necklace", "Locket Necklace"}


@dataclass(frozen=True)
class SizeField:
    """Which size measurement a lot type takes, and its allowed values"""
    kind: str  # metadata key: size, innerDiameter or length
    label: str
    options: List[str]


def size_field_for(lot_type: Optional[str]) -> Optional[SizeField]:
    """Map a lot type to the size/length field shown for it"""
    if not lot_type:
        return None
    if lot_type == "Ring":
        return SizeField("size", "Size", RING_SIZES)
    if lot_type in BANGLE_TYPES:
        return SizeField("innerDiameter", "Inner Diameter", BANGLE_WATCH_DIAMETERS)
    if lot_type in BRACELET_TYPES:
        return SizeField("length", "Length", BRACELET_LENGTHS)
    if lot_type in NECKLACE_TYPES:
        return SizeField("length", "Length", NECKLACE_LENGTHS)
    return SizeField("length", "Length", OTHER_LENGTHS)


def build_stage_metadata(
    lot_type: Optional[str],
    material: Optional[str],
    size_value: Optional[str],
) -> Optional[Dict[str, str]]:
    """Metadata sent with a staging request; None when nothing was chosen"""
    metadata = {}
    if lot_type:
        metadata["lotType"] = lot_type
    if material:
        metadata["material"] = material

    field = size_field_for(lot_type)
    if field and size_value:
        metadata[field.kind] = size_value

    return metadata or None


def _to_int(value, default: int = 1) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_capture_config(num_items, views_per_item) -> tuple:
    """At least one item; between one and five views per item"""
    items = max(1, _to_int(num_items))
    views = max(1, min(MAX_VIEWS_PER_ITEM, _to_int(views_per_item)))
    return items, views


def expected_image_count(num_items: int, views_per_item: int) -> int:
    return num_items * views_per_item


def check_capture_complete(image_count: int, num_items: int, views_per_item: int) -> None:
    """Raise ValueError unless exactly one photo per item view was supplied"""
    expected = expected_image_count(num_items, views_per_item)
    if image_count != expected:
        raise ValueError(f"Please capture all {expected} images before proceeding")


def reorder_images_by_item(
    images: List[UploadedImage],
    num_items: int,
    views_per_item: int,
) -> List[UploadedImage]:
    """
    Reorder photos from capture order to item order.

    Photos are captured view by view (every item's first view, then every
    item's second view, ...). Staging expects them item by item, so the
    photo originally at ``view * num_items + item`` gets the new index
    ``item * views_per_item + view``. Missing photos are skipped.
    """
    by_index = {img.index: img for img in images}
    reordered = []

    for item_index in range(num_items):
        for view_index in range(views_per_item):
            original = by_index.get(view_index * num_items + item_index)
            if original is not None:
                reordered.append(UploadedImage(
                    s3Key=original.s3Key,
                    index=item_index * views_per_item + view_index,
                ))

    return reordered


def parse_markings(value: Optional[str]) -> List[str]:
    """Semicolon-separated markings, blanks dropped"""
    if not value:
        return []
    return [m.strip() for m in value.split(";") if m.strip()]


def _to_float(value, default: Optional[float] = None) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def extra_metadata_fields(item: StagedItem) -> List[Tuple[str, str]]:
    """Plain metadata entries beyond weight and markings, as (key, text) for editing"""
    return [
        (key, "" if value is None else str(value))
        for key, value in (item.metadata.model_extra or {}).items()
        if not isinstance(value, (dict, list))
    ]


def carried_extras(item: StagedItem) -> str:
    """JSON of the staged fields the review form does not show"""
    return json.dumps({
        "item": item.model_extra or {},
        "metadata": item.metadata.model_extra or {},
    })


def _load_extras(value: Optional[str]) -> Dict[str, Dict[str, Any]]:
    try:
        data = json.loads(value or "{}")
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {
        part: data[part] for part in ("item", "metadata")
        if isinstance(data.get(part), dict)
    }


def _edited_metadata(form: Mapping[str, str], prefix: str, carried: Dict[str, Any]) -> Dict[str, Any]:
    """
    Carried metadata with the reviewer's edits applied.

    An entry left unchanged keeps its original value (and type); an edited
    one takes the submitted text.
    """
    metadata = dict(carried)
    field_prefix = prefix + "metadata-"
    for name in form.keys():
        if not name.startswith(field_prefix):
            continue
        key = name[len(field_prefix):]
        text = form.get(name, "")
        original = carried.get(key)
        if original is not None and str(original) == text:
            continue
        metadata[key] = text
    return metadata


def staged_items_from_form(form: Mapping[str, str], count: int) -> List[StagedItem]:
    """
    Rebuild the reviewed staged items from the review form.

    Each item's fields are posted as ``items-<n>-<field>``; images travel as
    one ``|``-joined hidden field. Extra metadata entries are posted as
    ``items-<n>-metadata-<key>`` and everything else the backend staged
    rides along as JSON in ``items-<n>-extra``.
    """
    items = []
    for n in range(count):
        prefix = f"items-{n}-"
        extras = _load_extras(form.get(prefix + "extra"))
        images = form.get(prefix + "images", "")

        metadata = _edited_metadata(form, prefix, extras.get("metadata", {}))
        metadata["weight_grams"] = _to_float(form.get(prefix + "weight_grams"))
        metadata["markings"] = parse_markings(form.get(prefix + "markings"))

        record = dict(extras.get("item", {}))
        record.update({
            "item_index": _to_int(form.get(prefix + "item_index"), n),
            "images": [key for key in images.split("|") if key],
            "title": form.get(prefix + "title", "").strip(),
            "description": form.get(prefix + "description", "").strip(),
            "value_estimate": {
                "min_value": _to_float(form.get(prefix + "min_value"), 0),
                "max_value": _to_float(form.get(prefix + "max_value"), 0),
                "currency": form.get(prefix + "currency") or "USD",
            },
            "metadata": metadata,
        })
        items.append(StagedItem.model_validate(record))
    return items
