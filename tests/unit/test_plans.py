"""
WebShield - Plan Catalog Tests
===============================
"""

import pytest

from webshield.plans import (
    Plan,
    can_generate_comprehensive,
    get_plan_info,
    has_ai_access,
    list_plans,
    normalize_plan,
    scan_quota,
)


class TestNormalizePlan:
    """Test plan name normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("base", Plan.BASE),
        ("BASE", Plan.BASE),
        ("Premium", Plan.PREMIUM),
        ("premium", Plan.PREMIUM),
        (" pro ", Plan.PRO),
        (Plan.PRO, Plan.PRO),
    ])
    def test_known_names(self, raw, expected):
        assert normalize_plan(raw) is expected

    @pytest.mark.parametrize("raw", ["enterprise", "", None, 3])
    def test_unknown_names(self, raw):
        assert normalize_plan(raw) is None


class TestCapabilities:
    """Test quota and feature lookups."""

    def test_quotas(self):
        assert scan_quota("Base") == 3
        assert scan_quota("Premium") == 10
        assert scan_quota("Pro") is None

    def test_quota_is_case_insensitive(self):
        assert scan_quota("premium") == 10

    def test_unknown_plan_has_nothing(self):
        assert scan_quota("Gold") == 0
        assert has_ai_access("Gold") is False
        assert can_generate_comprehensive("Gold") is False

    def test_ai_access(self):
        assert has_ai_access("Base") is False
        assert has_ai_access("Premium") is True
        assert has_ai_access("pro") is True

    def test_comprehensive_reports(self):
        assert can_generate_comprehensive("Base") is False
        assert can_generate_comprehensive("Premium") is True
        assert can_generate_comprehensive("Pro") is True

    def test_prices(self):
        assert get_plan_info("base")["price"] == 29
        assert get_plan_info("premium")["price"] == 79
        assert get_plan_info("pro")["price"] == 149


class TestListPlans:
    def test_display_order(self):
        assert [p["name"] for p in list_plans()] == ["Base", "Premium", "Pro"]

    def test_features_are_copies(self):
        plans = list_plans()
        plans[0]["features"].append("mutated")
        assert "mutated" not in list_plans()[0]["features"]
