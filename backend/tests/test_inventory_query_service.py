from datetime import datetime, timedelta, timezone

import pytest

from storefront.models.enums import MovementType, ProductType, StockLevel
from storefront.models.stock_movement import StockMovement
from storefront.services import inventory_query_service
from storefront.services.errors import ValidationError
from storefront.services.inventory_query_service import LowStockThresholds, classify_stock_level


THRESHOLDS = LowStockThresholds(simple=10, variant=5)


@pytest.mark.parametrize(
    "stock, product_type, expected",
    [
        (0, ProductType.SIMPLE, StockLevel.OUT_OF_STOCK),
        (3, ProductType.SIMPLE, StockLevel.LOW_STOCK),
        (3, ProductType.VARIANT, StockLevel.LOW_STOCK),
        (7, ProductType.SIMPLE, StockLevel.LOW_STOCK),
        (7, ProductType.VARIANT, StockLevel.IN_STOCK),
        (10, ProductType.SIMPLE, StockLevel.IN_STOCK),
        (5, ProductType.VARIANT, StockLevel.IN_STOCK),
        (None, ProductType.SIMPLE, None),
    ],
)
def test_classify_stock_level_uses_threshold_per_type(stock, product_type, expected):
    assert classify_stock_level(stock, product_type, THRESHOLDS) == expected


def _ids(page):
    return {item.id for item in page.items}


def test_low_stock_filter_differs_by_product_type(db, make_product, make_variant):
    simple_three = make_product(name="Belt", stock=3)
    simple_seven = make_product(name="Cap", stock=7)
    shirt = make_product(name="Shirt", stock=None)
    variant_three = make_variant(shirt, name="S", stock=3, sort_order=1)
    variant_seven = make_variant(shirt, name="M", stock=7, sort_order=2)

    low = inventory_query_service.get_inventory_overview(db, {"stock_level": "low-stock"})
    in_stock = inventory_query_service.get_inventory_overview(db, {"stock_level": "in-stock"})

    assert _ids(low) == {simple_three.id, simple_seven.id, variant_three.id}
    assert _ids(in_stock) == {variant_seven.id}


def test_out_of_stock_excludes_untracked(db, make_product):
    empty = make_product(name="Scarf", stock=0)
    make_product(name="Gift Card", stock=None)

    page = inventory_query_service.get_inventory_overview(db, {"stock_level": "out-of-stock"})

    assert _ids(page) == {empty.id}
    assert page.items[0].stock_level == StockLevel.OUT_OF_STOCK


def test_all_includes_untracked_items(db, make_product):
    make_product(name="Gift Card", stock=None)

    page = inventory_query_service.get_inventory_overview(db)

    assert page.total == 1
    assert page.items[0].stock_level is None


def test_product_type_filter(db, make_product, make_variant):
    simple = make_product(name="Sock", stock=20)
    boots = make_product(name="Boots", stock=None)
    variant = make_variant(boots, name="42", stock=2)

    simple_page = inventory_query_service.get_inventory_overview(db, {"product_type": "simple"})
    variant_page = inventory_query_service.get_inventory_overview(db, {"product_type": "variant"})

    assert _ids(simple_page) == {simple.id}
    assert _ids(variant_page) == {variant.id}
    assert variant_page.items[0].product_name == "Boots"
    assert variant_page.items[0].variant_name == "42"


def test_search_matches_name_or_sku_case_insensitive(db, make_product, make_variant):
    by_name = make_product(name="Silk Scarf", stock=5)
    by_sku = make_product(name="Leather Wallet", stock=5, sku="WAL-SILKY")
    make_product(name="Cotton Tee", stock=5)
    dress = make_product(name="Silk Dress", stock=None)
    variant = make_variant(dress, name="S", stock=4)

    page = inventory_query_service.get_inventory_overview(db, {"search": "silk"})

    assert _ids(page) == {by_name.id, by_sku.id, variant.id}


@pytest.mark.parametrize("term", ["%", "_"])
def test_search_treats_wildcards_literally(db, make_product, term):
    make_product(name="Linen Shirt", stock=5, sku="LIN-001")
    cotton = make_product(name="100% Cotton Tee", stock=5, sku="TEE_001")

    page = inventory_query_service.get_inventory_overview(db, {"search": term})

    assert _ids(page) == {cotton.id}


def test_filters_combine_with_and(db, make_product):
    make_product(name="Silk Scarf", stock=50)
    low_silk = make_product(name="Silk Tie", stock=2)
    make_product(name="Cotton Tee", stock=2)

    page = inventory_query_service.get_inventory_overview(
        db, {"search": "silk", "stock_level": "low-stock", "product_type": "simple"}
    )

    assert _ids(page) == {low_silk.id}


def test_pagination_counts_the_whole_filtered_set(db, make_product):
    for i in range(25):
        make_product(name=f"Item {i:02d}", stock=1)
    make_product(name="Plenty", stock=100)

    page = inventory_query_service.get_inventory_overview(
        db, {"stock_level": "low-stock", "page": 2, "limit": 20}
    )

    assert len(page.items) == 5
    assert page.total == 25
    assert page.total_pages == 2
    assert page.page == 2


def test_items_are_ordered_by_product_then_variant(db, make_product, make_variant):
    make_product(name="Zip Hoodie", stock=1)
    jeans = make_product(name="Jeans", stock=None)
    make_variant(jeans, name="32", stock=1, sort_order=2)
    make_variant(jeans, name="30", stock=1, sort_order=1)

    page = inventory_query_service.get_inventory_overview(db)

    assert [(i.product_name, i.variant_name) for i in page.items] == [
        ("Jeans", "30"),
        ("Jeans", "32"),
        ("Zip Hoodie", None),
    ]


def test_invalid_filter_is_a_validation_error(db):
    with pytest.raises(ValidationError) as excinfo:
        inventory_query_service.get_inventory_overview(db, {"limit": 500})

    assert "limit" in {f["field"] for f in excinfo.value.fields}


def test_custom_thresholds_are_honoured(db, make_product):
    product = make_product(name="Gloves", stock=7)

    page = inventory_query_service.get_inventory_overview(
        db,
        {"stock_level": "in-stock"},
        thresholds=LowStockThresholds(simple=5, variant=5),
    )

    assert _ids(page) == {product.id}


def _movement(db, product, created_at, movement_type=MovementType.IN, variant=None):
    movement = StockMovement(
        product_id=product.id,
        variant_id=variant.id if variant else None,
        type=movement_type,
        quantity=1,
        previous_stock=0,
        new_stock=1,
        created_at=created_at,
    )
    db.add(movement)
    db.commit()
    return movement


def test_history_is_newest_first_and_limited(db, make_product):
    product = make_product(stock=0)
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    oldest = _movement(db, product, base)
    middle = _movement(db, product, base + timedelta(hours=1), MovementType.OUT)
    newest = _movement(db, product, base + timedelta(hours=2), MovementType.ADJUST)

    history = inventory_query_service.get_inventory_history(db, limit=2)

    assert [m.id for m in history] == [newest.id, middle.id]
    assert oldest.id not in {m.id for m in history}


def test_history_order_is_stable_for_equal_timestamps(db, make_product):
    product = make_product(stock=0)
    same_time = datetime(2026, 2, 1, tzinfo=timezone.utc)
    movements = [_movement(db, product, same_time) for _ in range(4)]
    expected = sorted((m.id for m in movements), reverse=True)

    first_page = inventory_query_service.get_inventory_history(db, limit=2)
    everything = inventory_query_service.get_inventory_history(db, limit=4)

    assert [m.id for m in everything] == expected
    assert [m.id for m in first_page] == expected[:2]


def test_history_scoped_to_product_and_variant(db, make_product, make_variant):
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    product = make_product(name="Parka", stock=None)
    variant = make_variant(product, name="L")
    other_variant = make_variant(product, name="XL")
    stranger = make_product(name="Beanie")
    mine = _movement(db, product, now, variant=variant)
    _movement(db, product, now, variant=other_variant)
    _movement(db, stranger, now)

    by_product = inventory_query_service.get_inventory_history(db, product_id=product.id)
    by_variant = inventory_query_service.get_inventory_history(
        db, product_id=product.id, variant_id=variant.id
    )

    assert len(by_product) == 2
    assert [m.id for m in by_variant] == [mine.id]
    assert by_variant[0].product_name == "Parka"
    assert by_variant[0].variant_name == "L"
    assert by_variant[0].sku == variant.sku


def test_history_rejects_out_of_range_limit(db):
    with pytest.raises(ValidationError):
        inventory_query_service.get_inventory_history(db, limit=0)


def test_low_stock_summary_lists_lowest_first(db, make_product, make_variant):
    make_product(name="Mittens", stock=8)
    make_product(name="Earmuffs", stock=2)
    make_product(name="Plenty", stock=40)
    coat = make_product(name="Coat", stock=None)
    make_variant(coat, name="M", stock=1)

    summary = inventory_query_service.get_low_stock_summary(db, limit=2, thresholds=THRESHOLDS)

    assert summary.count == 3
    assert [item.stock for item in summary.items] == [1, 2]
