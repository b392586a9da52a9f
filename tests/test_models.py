from auction_api.models import Batch, BatchStatus, Item, User, ValueEstimate
from dashboard import platforms


def test_value_estimate_display():
    assert ValueEstimate(min_value=100, max_value=250).display() == "USD 100-250"


def test_item_display_helpers():
    ring = Item(item_id="item-1", item_title="Gold Ring", images=["a.jpg", "b.jpg"], price=12.5)
    assert ring.display_title == "Gold Ring"
    assert ring.primary_image == "a.jpg"
    assert ring.display_value == "$12.50"

    bare = Item(item_id="item-2", marker_id="17")
    assert bare.display_title == "Item 17"
    assert bare.primary_image is None
    assert bare.display_value == ""


def test_item_keeps_unknown_properties():
    item = Item.model_validate({"item_id": "item-1", "stone": "opal", "karat": 14})
    assert item.get("stone") == "opal"
    assert item.get("missing", "-") == "-"
    assert item.scalar_properties()["karat"] == 14


def test_extra_columns_put_common_properties_first():
    items = [Item.model_validate({
        "item_id": "item-1",
        "title": "Ring",
        "stone_count": 3,
        "material": "14k Gold",
        "jewelry_type": "Ring",
        "images": ["a.jpg"],
    })]

    assert Item.extra_columns(items) == [
        ("jewelry_type", "Type"),
        ("material", "Material"),
        ("stone_count", "Stone Count"),
    ]
    assert Item.extra_columns([]) == []


def test_item_accepts_loosely_typed_display_fields():
    item = Item.model_validate({"item_id": "item-1", "size": 7, "weight": "12.5 g", "price": "On request"})
    assert item.size == "7"
    assert item.weight == "12.5 g"
    assert item.display_value == "On request"
    assert Item.model_validate({"item_id": "item-2", "weight": 3.4}).weight == 3.4


def test_batch_progress_and_status():
    batch = Batch.model_validate({
        "batch_id": "b1",
        "status": "completed",
        "request_counts": {"total": 3, "completed": 2, "failed": 1},
        "metadata": {"auction_id": "a1"},
    })
    assert batch.progress == 67
    assert batch.auction_id == "a1"
    assert batch.is_terminal
    assert batch.status_label == "completed"
    assert not BatchStatus.PENDING.is_terminal
    assert Batch(batch_id="b2").progress == 0


def test_batch_with_unknown_status():
    batch = Batch.model_validate({"batch_id": "b1", "status": "expired"})
    assert batch.status == "expired"
    assert batch.status_label == "expired"
    assert batch.is_terminal

    running = Batch.model_validate({"batch_id": "b2", "status": "processing"})
    assert running.status is BatchStatus.PROCESSING
    assert not running.is_terminal


def test_user_matches_any_identifier():
    user = User(user_id="u-42", username="Alice", email="alice@example.com")
    assert user.matches("ali")
    assert user.matches("EXAMPLE")
    assert user.matches("u-4")
    assert not user.matches("bob")


def test_catalog_summary_and_filenames():
    items = [Item(item_id="1", images=["a.jpg"]), Item(item_id="2")]
    assert platforms.catalog_summary(items) == {"total": 2, "with_images": 1, "without_images": 1}
    assert platforms.export_filename("a1", "liveauctioneers") == "auction-a1-catalog-liveauctioneers.csv"
    assert platforms.csv_filename("a1") == "auction-a1-items.csv"


def test_get_platform():
    live = platforms.get_platform("liveauctioneers")
    assert live.name == "LiveAuctioneers"
    assert "StartPrice" in live.required_fields
    assert platforms.get_platform("ebay") is None
    assert platforms.get_platform(None) is None
