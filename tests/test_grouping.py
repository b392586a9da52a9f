import pytest

from auction_api.models import ImageGroup
from dashboard import grouping


def groups():
    return [
        ImageGroup.model_validate({"marker_id": "1", "images": [
            {"index": 0, "imageKey": "a"}, {"index": 1, "imageKey": "b"},
        ]}),
        ImageGroup.model_validate({"marker_id": "2", "images": [
            {"index": 2, "imageKey": "c"},
        ]}),
    ]


def keys(result):
    return {g.marker_id: [i.imageKey for i in g.images] for g in result}


def test_move_image_between_groups():
    original = groups()
    moved = grouping.move_image(original, "b", "2", before_key="c")

    assert keys(moved) == {"1": ["a"], "2": ["b", "c"]}
    assert keys(original) == {"1": ["a", "b"], "2": ["c"]}


def test_move_image_within_group():
    assert keys(grouping.move_image(groups(), "b", "1", before_key="a")) == {"1": ["b", "a"], "2": ["c"]}


def test_move_to_unknown_group_is_a_noop():
    assert keys(grouping.move_image(groups(), "a", "99")) == keys(groups())
    assert keys(grouping.move_image(groups(), "zz", "2")) == keys(groups())


def test_emptied_group_is_removed():
    assert keys(grouping.move_image(groups(), "c", "1")) == {"1": ["a", "b", "c"]}


def test_apply_assignments_with_new_group():
    result = grouping.apply_assignments(groups(), {
        "a": "1",
        "b": grouping.NEW_GROUP,
        "c": grouping.NEW_GROUP,
    })
    assert keys(result) == {"1": ["a"], "new-1": ["b", "c"]}


def test_finalize_payload_keeps_only_index_and_key():
    extra = ImageGroup.model_validate({"marker_id": "3", "images": [
        {"index": 5, "imageKey": "e", "thumbnail": "t.jpg"},
    ]})

    payload = grouping.finalize_payload([extra], "a1")

    assert payload == {
        "auction_id": "a1",
        "groups": [{"marker_id": "3", "images": [{"index": 5, "imageKey": "e"}]}],
    }


def test_groups_survive_the_hidden_field():
    assert keys(grouping.groups_from_json(grouping.groups_to_json(groups()))) == keys(groups())
    assert grouping.groups_from_json("") == []


def test_malformed_groups_field():
    with pytest.raises(ValueError, match="Failed to load grouped images"):
        grouping.groups_from_json("{not json")
    with pytest.raises(ValueError):
        grouping.groups_from_json('{"marker_id": "1"}')


def test_image_count():
    assert grouping.image_count(groups()) == 3
