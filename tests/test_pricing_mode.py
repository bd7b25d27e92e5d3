import math

import pytest

from conftest import make_item
from pricebook.domain import PRESET_MODES, PricingMode, PricingModeId, apply_mode
from pricebook.domain.errors import InvalidBasePriceError
from pricebook.domain.pricing_mode import resolve_multiplier
from pricebook.domain.value_objects import FailureKind


def _mode(adjustments):
    return PricingMode(id=PricingModeId("m"), name="m", adjustments=adjustments)


class TestResolveMultiplier:
    def test_category_beats_all(self):
        assert resolve_multiplier({"all": 0.9, "labor": 1.5}, "labor") == 1.5

    def test_falls_back_to_all(self):
        assert resolve_multiplier({"all": 0.9, "labor": 1.5}, "materials") == 0.9

    def test_identity_without_all(self):
        assert resolve_multiplier({"labor": 1.5}, "equipment") == 1.0
        assert resolve_multiplier({}, None) == 1.0

    def test_category_key_is_case_insensitive(self):
        assert resolve_multiplier({"labor": 1.25}, "Labor") == 1.25


class TestApplyMode:
    def test_happy_path_prices(self):
        mode = _mode({"all": 0.9})
        prices = [apply_mode(mode, make_item(str(i), base)) for i, base in enumerate([100, 200, 300])]
        assert prices == [90.0, 180.0, 270.0]

    def test_clamped_to_ceiling(self):
        item = make_item("a", 100.0, floor=50.0, ceiling=80.0)
        assert apply_mode(_mode({"all": 0.9}), item) == 80.0

    def test_clamped_to_floor(self):
        item = make_item("a", 100.0, floor=95.0, ceiling=150.0)
        assert apply_mode(_mode({"all": 0.5}), item) == 95.0

    @pytest.mark.parametrize("multiplier", [0.0, 0.3, 1.0, 3.0, 10.0])
    def test_never_leaves_declared_range(self, multiplier):
        item = make_item("a", 100.0, floor=70.0, ceiling=120.0)
        price = apply_mode(_mode({"all": multiplier}), item)
        assert 70.0 <= price <= 120.0

    def test_only_floor_means_no_clamping(self):
        item = make_item("a", 100.0, floor=95.0)
        assert apply_mode(_mode({"all": 0.5}), item) == 50.0

    def test_rounds_to_cents(self):
        assert apply_mode(_mode({"all": 0.85}), make_item("a", 19.99)) == 16.99

    def test_per_category_factor(self):
        premium = next(m for m in PRESET_MODES if m.name == "Premium Service")
        labor = make_item("l", 100.0, category="labor")
        equipment = make_item("e", 100.0, category="equipment")
        assert apply_mode(premium, labor) == 150.0
        assert apply_mode(premium, equipment) == 100.0

    @pytest.mark.parametrize("base_price", [None, "12", math.nan, math.inf, True])
    def test_unusable_base_price(self, base_price):
        item = make_item("bad", base_price, price=10.0)
        with pytest.raises(InvalidBasePriceError) as exc_info:
            apply_mode(_mode({"all": 0.9}), item)
        assert exc_info.value.kind is FailureKind.INVALID_BASE_PRICE
        assert exc_info.value.item_id == "bad"


class TestPricingModeModel:
    def test_presets_are_all_flagged(self):
        assert len(PRESET_MODES) == 8
        assert all(m.is_preset for m in PRESET_MODES)

    def test_win_rate(self):
        mode = PricingMode(
            id=PricingModeId("m"),
            name="m",
            adjustments={"all": 1.0},
            successful_estimates=2,
            total_estimates=3,
        )
        assert mode.win_rate == 67
        assert _mode({"all": 1.0}).win_rate is None


@pytest.mark.parametrize(
    "floor, ceiling",
    [(80.0, 50.0), (-1.0, 150.0)],
)
def test_broken_price_range_is_an_invalid_base_price(floor, ceiling):
    item = make_item("broken", 100.0, floor=floor, ceiling=ceiling)
    with pytest.raises(InvalidBasePriceError) as exc_info:
        apply_mode(_mode({"all": 0.9}), item)
    assert exc_info.value.kind is FailureKind.INVALID_BASE_PRICE
    assert "price range" in exc_info.value.reason
