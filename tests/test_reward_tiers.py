from decimal import Decimal

from shopfund.utils.reward_tiers import (
    available_tiers,
    qualifying_tier,
    resolve_tier,
    sort_tiers,
)

TIERS = [
    {"id": "a", "amount": 10, "title": "A"},
    {"id": "b", "amount": 25, "title": "B"},
    {"id": "c", "amount": 50, "title": "C"},
]


def test_picks_largest_threshold_not_exceeding_amount():
    assert resolve_tier(30, TIERS)["title"] == "B"


def test_exact_threshold_qualifies():
    assert resolve_tier(50, TIERS)["title"] == "C"
    assert resolve_tier("25.00", TIERS)["title"] == "B"


def test_order_of_definition_does_not_matter():
    shuffled = [TIERS[2], TIERS[0], TIERS[1]]
    assert resolve_tier(30, shuffled)["title"] == "B"
    assert resolve_tier(1000, shuffled)["title"] == "C"


def test_below_every_threshold_falls_back_to_first_for_preview():
    assert resolve_tier(5, TIERS)["title"] == "A"
    assert resolve_tier(5, [TIERS[1], TIERS[0]])["title"] == "B"


def test_strict_variant_earns_nothing_below_every_threshold():
    assert qualifying_tier(5, TIERS) is None
    assert qualifying_tier(10, TIERS)["title"] == "A"


def test_no_tiers():
    assert resolve_tier(100, []) is None
    assert qualifying_tier(100, []) is None


def test_equal_thresholds_last_defined_wins():
    tiers = [
        {"id": "x", "amount": 20, "title": "First"},
        {"id": "y", "amount": 20, "title": "Second"},
    ]
    assert resolve_tier(20, tiers)["title"] == "Second"


def test_decimal_and_string_amounts():
    tiers = [{"id": "a", "amount": Decimal("9.99"), "title": "A"}, {"id": "b", "amount": "10", "title": "B"}]
    assert resolve_tier(Decimal("9.995"), tiers)["title"] == "B"
    assert resolve_tier("9.99", tiers)["title"] == "A"


def test_resolution_does_not_mutate_input():
    tiers = [dict(t) for t in reversed(TIERS)]
    before = [dict(t) for t in tiers]
    resolve_tier(30, tiers)
    assert tiers == before


def test_available_tiers_drops_sold_out_only():
    tiers = [
        {"id": "a", "amount": 10, "quantity_available": None},
        {"id": "b", "amount": 25, "quantity_available": 0},
        {"id": "c", "amount": 50, "quantity_available": 3},
    ]
    assert [t["id"] for t in available_tiers(tiers)] == ["a", "c"]


def test_sold_out_tier_is_skipped_when_awarding():
    tiers = [
        {"id": "a", "amount": 10, "title": "A", "quantity_available": None},
        {"id": "b", "amount": 25, "title": "B", "quantity_available": 0},
    ]
    assert qualifying_tier(30, available_tiers(tiers))["title"] == "A"


def test_sort_tiers_is_stable():
    tiers = [
        {"id": "c", "amount": 50},
        {"id": "x", "amount": 10},
        {"id": "y", "amount": 10},
    ]
    assert [t["id"] for t in sort_tiers(tiers)] == ["x", "y", "c"]
