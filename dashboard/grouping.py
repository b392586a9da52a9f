"""
Image regrouping between the groupImages and finalizeItems calls.

The backend proposes which photos belong to the same lot (one group per
marker). Staff correct the proposal by moving photos between groups; the
groups travel between form submissions as JSON in a hidden field.
"""

import json
from typing import Dict, List, Mapping, Optional

from auction_api.models import ImageGroup

NEW_GROUP = "__new__"


def groups_to_json(groups: List[ImageGroup]) -> str:
    return json.dumps([g.model_dump(include={"marker_id", "images"}) for g in groups])


def groups_from_json(raw: Optional[str]) -> List[ImageGroup]:
    """Parse the hidden groups field; malformed input raises ValueError"""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to load grouped images: {e}")
    if not isinstance(data, list):
        raise ValueError("Failed to load grouped images: expected a list of groups")
    return [ImageGroup.model_validate(g) for g in data]


def _copy(groups: List[ImageGroup]) -> List[ImageGroup]:
    return [ImageGroup(marker_id=g.marker_id, images=list(g.images)) for g in groups]


def _find_group(groups: List[ImageGroup], marker_id: str) -> int:
    for i, group in enumerate(groups):
        if group.marker_id == marker_id:
            return i
    return -1


def _find_image(groups: List[ImageGroup], image_key: str):
    for gi, group in enumerate(groups):
        for ii, image in enumerate(group.images):
            if image.imageKey == image_key:
                return gi, ii
    return -1, -1


def move_image(
    groups: List[ImageGroup],
    image_key: str,
    target_marker_id: str,
    before_key: Optional[str] = None,
) -> List[ImageGroup]:
    """
    Move one photo into a group, optionally in front of another photo.

    Returns new groups; the input is not modified. Unknown photos or target
    groups leave the grouping unchanged. A group emptied by the move is
    removed.
    """
    result = _copy(groups)
    source_gi, source_ii = _find_image(result, image_key)
    target_gi = _find_group(result, target_marker_id)
    if source_gi == -1 or target_gi == -1 or image_key == before_key:
        return result

    image = result[source_gi].images.pop(source_ii)
    target = result[target_gi].images

    position = len(target)
    if before_key:
        for i, other in enumerate(target):
            if other.imageKey == before_key:
                position = i
                break
    target.insert(position, image)

    return [g for g in result if g.images]


def _next_marker(groups: List[ImageGroup]) -> str:
    taken = {g.marker_id for g in groups}
    n = 1
    while f"new-{n}" in taken:
        n += 1
    return f"new-{n}"


def apply_assignments(groups: List[ImageGroup], assignments: Mapping[str, str]) -> List[ImageGroup]:
    """
    Apply a whole form of ``image_key -> marker_id`` choices at once.

    Photos keep their relative order; photos moved into another group are
    appended to it. ``__new__`` puts the photo in a fresh group (all photos
    sent to ``__new__`` in one submission share that group). Empty groups are
    dropped.
    """
    result = _copy(groups)
    new_marker = None

    moves = []
    for group in result:
        for image in group.images:
            target = assignments.get(image.imageKey)
            if target and target != group.marker_id:
                moves.append((image.imageKey, target))

    for image_key, target in moves:
        if target == NEW_GROUP:
            if new_marker is None:
                new_marker = _next_marker(result)
                result.append(ImageGroup(marker_id=new_marker, images=[]))
            target = new_marker
        if _find_group(result, target) == -1:
            continue
        source_gi, source_ii = _find_image(result, image_key)
        image = result[source_gi].images.pop(source_ii)
        result[_find_group(result, target)].images.append(image)

    return [g for g in result if g.images]


def finalize_payload(groups: List[ImageGroup], auction_id: Optional[str]) -> Dict:
    """Request body for finalizeItems; only index and imageKey per photo"""
    return {
        "auction_id": auction_id,
        "groups": [
            {
                "marker_id": group.marker_id,
                "images": [{"index": img.index, "imageKey": img.imageKey} for img in group.images],
            }
            for group in groups
        ],
    }


def image_count(groups: List[ImageGroup]) -> int:
    return sum(len(g.images) for g in groups)
