"""Tests for templated suggestions and recommendations."""

import pytest

from shop_boost.intelligence.suggestions import (
    build_recommendations,
    build_suggestions,
    menu_confidence,
    menu_price,
)
from shop_boost.schemas.shop_health import ShopHealthIssue, SuggestionsBlock, TopRepair


def _repairs(n: int) -> list[TopRepair]:
    return [TopRepair(label=f"Job {i}", count=10 - i, revenue=1000.0) for i in range(n)]


class TestMenuPricing:
    @pytest.mark.parametrize(
        ("average_ro", "price"),
        [(0, 95), (200, 95), (1000, 180), (1500, 270), (2000, 360)],
    )
    def test_price(self, average_ro, price) -> None:
        assert menu_price(average_ro) == price

    def test_confidence(self) -> None:
        assert menu_confidence(10, 20) == 0.8
        assert menu_confidence(10, 100) == 0.65
        assert menu_confidence(100, 100) == 0.92


class TestBuildSuggestions:
    def test_menu_items_capped_at_five(self) -> None:
        block = build_suggestions(_repairs(7), average_ro=500, has_fleet_flag=False, total_repair_orders=40)
        assert [item.name for item in block.menu_items] == [f"Job {i} Package" for i in range(5)]

    def test_labor_hours_default_and_passthrough(self) -> None:
        repairs = [
            TopRepair(label="Brakes", count=5, revenue=500.0, average_labor_hours=2.25),
            TopRepair(label="Tires", count=3, revenue=300.0),
        ]
        block = build_suggestions(repairs, average_ro=300, has_fleet_flag=False, total_repair_orders=8)
        assert [item.estimated_labor_hours for item in block.menu_items] == [2.25, 1.2]
        assert all(item.category == "auto-generated" for item in block.menu_items)

    def test_retail_inspections(self) -> None:
        block = build_suggestions([], average_ro=0, has_fleet_flag=False, total_repair_orders=0)
        assert [(i.name, i.usage_context, i.confidence) for i in block.inspections] == [
            ("Retail Multi-Point Inspection", "retail", 0.85),
            ("Brake & Tire Safety Check", "retail", 0.78),
        ]

    def test_fleet_inspections(self) -> None:
        block = build_suggestions([], average_ro=0, has_fleet_flag=True, total_repair_orders=0)
        assert [(i.name, i.usage_context) for i in block.inspections] == [
            ("Fleet PM + DOT Walkaround", "fleet"),
            ("Brake & Tire Safety Check", "mixed"),
        ]

    def test_staff_invites(self) -> None:
        block = build_suggestions([], average_ro=0, has_fleet_flag=False, total_repair_orders=0)
        assert [s.role for s in block.staff_invites] == ["service_advisor", "tech"]
        assert all(s.email is None for s in block.staff_invites)

    def test_ids_unique(self) -> None:
        block = build_suggestions(_repairs(5), average_ro=500, has_fleet_flag=False, total_repair_orders=40)
        ids = [m.id for m in block.menu_items] + [i.id for i in block.inspections]
        assert len(ids) == len(set(ids)) == 7


class TestBuildRecommendations:
    def test_empty(self) -> None:
        assert build_recommendations([], SuggestionsBlock(), average_ro=0, total_repair_orders=0) == []

    def test_expected_impact_needs_volume(self) -> None:
        block = build_suggestions(_repairs(1), average_ro=500, has_fleet_flag=False, total_repair_orders=10)
        small = build_recommendations([], block, average_ro=500, total_repair_orders=10)
        large = build_recommendations([], block, average_ro=500, total_repair_orders=30)
        assert small[0].key == "publish_menus"
        assert small[0].expected_impact is None
        assert large[0].expected_impact == "Higher ARO + faster estimates"

    def test_issue_driven(self) -> None:
        issues = [
            ShopHealthIssue(key="low_aro", title="t", severity="high", detail="d"),
            ShopHealthIssue(key="low_aro", title="t", severity="high", detail="d"),
        ]
        recs = build_recommendations(issues, SuggestionsBlock(), average_ro=1234.4, total_repair_orders=50)
        assert [rec.key for rec in recs] == ["raise_aro_packages"]
        assert "$1,234" in recs[0].why
