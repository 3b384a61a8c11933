"""
Tests for the Pricing Engine

These tests verify the core pricing logic including:
- Tier selection by bag count
- Extra bags above the largest tier
- Half-rate (rounded up) subsequent days
- Input clamping
- Add-on line items
"""

import pytest
from decimal import Decimal

from pcl_edge.services.pricing_engine import (
    AddOn,
    LINE_ITEM_NAME_MAX,
    MAX_COUNT,
    PassTier,
    PricingEngine,
    addons_total,
    build_line_items,
    ceil_rate,
    clamp_count,
    parse_addons,
    to_decimal,
    to_minor_units,
)


@pytest.fixture
def engine():
    return PricingEngine()


class TestTierSelection:
    """Tier lookup by inclusive bag capacity"""

    def test_two_bags_is_solo(self, engine):
        """2 bags fits Solo Traveler"""
        tier, extra = engine.tier_for_bags(2)
        assert tier.id == "solo"
        assert extra == 0

    def test_three_bags_is_couples(self, engine):
        """3 bags moves up to Couples Traveler"""
        tier, extra = engine.tier_for_bags(3)
        assert tier.id == "couples"
        assert extra == 0

    def test_capacity_is_inclusive(self, engine):
        """Capacity is inclusive at the tier edge"""
        assert engine.tier_for_bags(6)[0].id == "family"
        assert engine.tier_for_bags(7)[0].id == "large"

    def test_above_largest_tier_counts_extra_bags(self, engine):
        """Bags beyond the largest tier are extra bags"""
        tier, extra = engine.tier_for_bags(11)
        assert tier.id == "large"
        assert extra == 3

    def test_tiers_sorted_regardless_of_input_order(self):
        """Custom tiers are sorted by capacity"""
        engine = PricingEngine(tiers=(
            PassTier("big", "Big", 10, Decimal("100")),
            PassTier("small", "Small", 1, Decimal("10")),
        ))
        assert engine.tier_for_bags(1)[0].id == "small"
        assert engine.largest_tier.id == "big"

    def test_empty_tier_list_rejected(self):
        """An engine needs at least one tier"""
        with pytest.raises(ValueError):
            PricingEngine(tiers=())


class TestPricingFormula:
    """Totals for known bag/day combinations"""

    def test_solo_one_day(self, engine):
        """2 bags, 1 day on Solo Traveler = 49"""
        assert engine.price(2, 1) == Decimal("49")

    def test_solo_three_days(self, engine):
        """49 + 2 x ceil(49 x 0.5) = 49 + 2 x 25 = 99"""
        assert engine.price(2, 3) == Decimal("99")

    def test_nine_bags_one_day(self, engine):
        """Largest tier (8 bags, 159) plus one extra bag at 15 = 174"""
        assert engine.price(9, 1) == Decimal("174")

    def test_extra_bag_subsequent_day_rate_rounds_up(self, engine):
        """Per extra day: ceil(159/2)=80 plus one extra bag at ceil(15/2)=8"""
        quote = engine.quote(9, 2)
        assert quote.per_extra_day == Decimal("88")
        assert quote.total == Decimal("262")

    def test_one_day_has_no_subsequent_day_component(self, engine):
        """A one-day pass is just the first-day price"""
        for bags in range(1, 13):
            quote = engine.quote(bags, 1)
            assert quote.total == quote.first_day

    def test_ceil_rate_applies_to_rate_not_aggregate(self):
        """Half rates round up per rate"""
        assert ceil_rate(Decimal("49")) == Decimal("25")
        assert ceil_rate(Decimal("15")) == Decimal("8")
        assert ceil_rate(Decimal("98")) == Decimal("49")

    def test_monotonic_in_bags_and_days(self, engine):
        """More bags or days never costs less"""
        for days in range(1, 6):
            prices = [engine.price(b, days) for b in range(1, 15)]
            assert prices == sorted(prices)
        for bags in range(1, 12):
            prices = [engine.price(bags, d) for d in range(1, 10)]
            assert prices == sorted(prices)

    def test_deterministic(self, engine):
        """Equal inputs give equal quotes"""
        assert engine.quote(5, 4) == engine.quote(5, 4)


class TestInputClamping:
    """Invalid counts become 1 instead of failing the checkout"""

    @pytest.mark.parametrize("value", [None, 0, -4, "abc", "", float("nan"), float("inf"), True, [], {}])
    def test_invalid_counts_clamp_to_one(self, value):
        """Invalid counts become 1"""
        assert clamp_count(value) == 1

    def test_numeric_strings_accepted(self):
        """Numeric strings are counts"""
        assert clamp_count("3") == 3

    def test_fractions_truncate(self):
        """Fractional counts truncate"""
        assert clamp_count(2.9) == 2

    def test_quote_uses_clamped_values(self, engine):
        """quote() clamps before pricing"""
        quote = engine.quote(bags=-1, days="x")
        assert quote.bags == 1
        assert quote.days == 1
        assert quote.total == Decimal("49")


class TestInputBounds:
    """Absurd inputs are bounded, never an exception"""

    def test_huge_counts_capped(self):
        """1e30 bags is not a booking; it prices at the cap"""
        assert clamp_count(1e30) == MAX_COUNT
        assert clamp_count("1e30") == MAX_COUNT

    def test_quote_at_cap_converts_to_minor_units(self, engine):
        """The largest possible quote still becomes a processor line item"""
        items = build_line_items(engine.quote(1e30, 1e30))
        assert items[0].amount_minor > 0
        assert f"{MAX_COUNT} bags" in items[0].name

    def test_huge_addon_amount_is_unparsable(self):
        """An out-of-range add-on amount is zero, so the add-on is dropped"""
        assert to_decimal(1e30) == Decimal("0")
        assert to_decimal("-1e30") == Decimal("0")
        addons = parse_addons([{"id": "x", "amount": 1e30}])
        assert len(build_line_items(PricingEngine().quote(1, 1), addons)) == 1

    def test_minor_units_never_raise_for_finite_amounts(self):
        """Precision follows the amount, beyond the default 28 digits"""
        assert to_minor_units(Decimal("1e30")) == 10 ** 32
        assert to_minor_units(Decimal("1e-40")) == 0

    def test_addon_below_one_minor_unit_dropped(self, engine):
        """A positive amount that rounds to zero cents is never billed as zero"""
        addons = [AddOn(id="dust", label="Dust", amount=Decimal("0.001"))]
        assert len(build_line_items(engine.quote(2, 1), addons)) == 1


class TestLineItems:
    """Line items sent to the payment processor"""

    def test_pass_line_description(self, engine):
        """Base line item name and amount in cents"""
        items = build_line_items(engine.quote(2, 3))
        assert items[0].name == "Solo Traveler - 2 bags - 3 days"
        assert items[0].amount_minor == 9900
        assert items[0].quantity == 1

    def test_singular_units(self, engine):
        """Singular bag/day wording"""
        items = build_line_items(engine.quote(1, 1))
        assert items[0].name == "Solo Traveler - 1 bag - 1 day"

    def test_extra_bags_in_pass_name(self, engine):
        """Extra bags appear in the pass name"""
        items = build_line_items(engine.quote(10, 1))
        assert items[0].name == "Large Group Traveler + 2 extra - 10 bags - 1 day"

    def test_non_positive_addons_dropped(self, engine):
        """Zero and negative add-ons are never billed"""
        addons = parse_addons([
            {"id": "insurance", "label": "Bag Insurance", "amount": 5},
            {"id": "free", "label": "Free Sticker", "amount": 0},
            {"id": "refund", "label": "Credit", "amount": -10},
        ])
        items = build_line_items(engine.quote(2, 1), addons)
        assert [i.name for i in items] == ["Solo Traveler - 2 bags - 1 day", "Bag Insurance"]
        assert items[1].amount_minor == 500

    def test_addon_amounts_to_minor_units(self):
        """Half-up conversion to cents"""
        assert to_minor_units(Decimal("12.345")) == 1235
        assert to_minor_units(Decimal("0.1")) == 10

    def test_long_names_truncated(self, engine):
        """Line names are cut to the processor limit"""
        addons = [AddOn(id="x", label="L" * 300, amount=Decimal("3"))]
        items = build_line_items(engine.quote(2, 1), addons)
        assert len(items[1].name) == LINE_ITEM_NAME_MAX

    def test_addons_total_ignores_non_positive(self):
        """Only positive add-ons count toward the total"""
        addons = parse_addons([{"id": "a", "amount": "2.50"}, {"id": "b", "amount": -1}])
        assert addons_total(addons) == Decimal("2.50")


class TestAddonParsing:
    """Lenient add-on list normalization"""

    @pytest.mark.parametrize("raw", [None, "insurance", 5, {"id": "a", "amount": 3}])
    def test_non_list_treated_as_empty(self, raw):
        """A non-list add-on value is no add-ons"""
        assert parse_addons(raw) == []

    def test_non_object_entries_skipped(self):
        """Entries that are not objects are skipped"""
        addons = parse_addons(["x", 3, {"id": "a", "label": "A", "amount": 1}])
        assert [a.id for a in addons] == ["a"]

    def test_label_falls_back_to_id_then_default(self):
        """Label falls back to id, then Add-on"""
        addons = parse_addons([{"id": "lock", "amount": 1}, {"amount": 1}])
        assert addons[0].label == "lock"
        assert addons[1].label == "Add-on"

    def test_unparsable_amount_is_zero(self):
        """Unparsable amounts are zero"""
        addons = parse_addons([{"id": "a", "amount": "lots"}])
        assert addons[0].amount == Decimal("0")
