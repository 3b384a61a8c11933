"""
Pricing Engine Service

Computes the luggage pass charge for a booking from:
- Bag count (selects the pass tier)
- Day count (first day at the tier price, later days at half rate)
- Selected add-ons (billed as separate line items)

Pricing Formula:
1. tier = first tier (ascending capacity) with capacity >= bags,
   else the largest tier with extra_bags = bags - largest capacity
2. first_day = tier.day1 + extra_bags * EXTRA_BAG_DAY1
3. per_extra_day = ceil(tier.day1 * 0.5) + extra_bags * ceil(EXTRA_BAG_DAY1 * 0.5)
4. total = first_day + (days - 1) * per_extra_day

Rounding is applied to the rates, never to the aggregate, and always rounds
up. The engine is pure: no I/O, no caching, deterministic for equal inputs.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_HALF_UP, localcontext
from typing import Any, List, Optional, Sequence, Tuple

from ..utils.sanitization import safe_truncate


@dataclass(frozen=True)
class PassTier:
    """A pass tier: inclusive bag capacity and first-day price"""
    id: str
    name: str
    max_bags: int
    day1: Decimal


PASS_TIERS: Tuple[PassTier, ...] = (
    PassTier("solo", "Solo Traveler", 2, Decimal("49")),
    PassTier("couples", "Couples Traveler", 4, Decimal("99")),
    PassTier("family", "Family Traveler", 6, Decimal("129")),
    PassTier("large", "Large Group Traveler", 8, Decimal("159")),
)

EXTRA_BAG_DAY1 = Decimal("15")
EXTRA_DAY_FACTOR = Decimal("0.5")

# Processor display limit for product names
LINE_ITEM_NAME_MAX = 120

# Upper bounds for request input; larger values are not real bookings
MAX_COUNT = 10_000
MAX_ADDON_AMOUNT = Decimal("100000")


@dataclass(frozen=True)
class Quote:
    """Computed price for a bag/day combination"""
    tier: PassTier
    bags: int
    days: int
    extra_bags: int
    first_day: Decimal
    per_extra_day: Decimal
    total: Decimal

    @property
    def pass_name(self) -> str:
        if self.extra_bags:
            return f"{self.tier.name} + {self.extra_bags} extra"
        return self.tier.name

    @property
    def description(self) -> str:
        bag_word = "bag" if self.bags == 1 else "bags"
        day_word = "day" if self.days == 1 else "days"
        return f"{self.pass_name} - {self.bags} {bag_word} - {self.days} {day_word}"


@dataclass(frozen=True)
class AddOn:
    id: str
    label: str
    amount: Decimal


@dataclass(frozen=True)
class LineItem:
    """One processor line item, amount in minor currency units"""
    name: str
    amount_minor: int
    quantity: int = 1


def clamp_count(value: Any) -> int:
    """
    Coerce a bag/day count to a positive integer.

    Missing, non-numeric, non-finite and non-positive values become 1;
    fractional values are truncated before clamping and counts above
    MAX_COUNT are capped.
    """
    if value is None or isinstance(value, bool):
        return 1
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return min(MAX_COUNT, max(1, int(number)))


def to_decimal(value: Any) -> Decimal:
    """Parse a monetary amount; anything unparsable or out of range is zero"""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite() or abs(amount) > MAX_ADDON_AMOUNT:
        return Decimal("0")
    return amount


def ceil_rate(rate: Decimal) -> Decimal:
    """Half of a rate, rounded up to a whole currency unit"""
    return (rate * EXTRA_DAY_FACTOR).to_integral_value(rounding=ROUND_CEILING)


def to_minor_units(amount: Decimal) -> int:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PricingEngine:
    """
    Pure pricing for pass tiers, extra bags, extra days and add-ons.

    Tiers are sorted by ascending capacity at construction so callers may
    pass them in any order.
    """

    def __init__(
        self,
        tiers: Sequence[PassTier] = PASS_TIERS,
        extra_bag_day1: Decimal = EXTRA_BAG_DAY1
    ):
        if not tiers:
            raise ValueError("at least one pass tier is required")
        self.tiers = tuple(sorted(tiers, key=lambda t: t.max_bags))
        self.extra_bag_day1 = Decimal(extra_bag_day1)

    @property
    def largest_tier(self) -> PassTier:
        return self.tiers[-1]

    def tier_for_bags(self, bags: int) -> Tuple[PassTier, int]:
        """
        Select the tier for a bag count.

        Returns:
            Tuple of (tier, extra_bags)
        """
        for tier in self.tiers:
            if bags <= tier.max_bags:
                return tier, 0
        largest = self.largest_tier
        return largest, max(0, bags - largest.max_bags)

    def quote(self, bags: Any = 1, days: Any = 1) -> Quote:
        """Price a pass for the given bags and days (inputs are clamped, never rejected)"""
        b = clamp_count(bags)
        d = clamp_count(days)
        tier, extra_bags = self.tier_for_bags(b)

        first_day = tier.day1 + extra_bags * self.extra_bag_day1
        per_extra_day = ceil_rate(tier.day1) + extra_bags * ceil_rate(self.extra_bag_day1)
        total = first_day + (d - 1) * per_extra_day

        return Quote(
            tier=tier,
            bags=b,
            days=d,
            extra_bags=extra_bags,
            first_day=first_day,
            per_extra_day=per_extra_day,
            total=total,
        )

    def price(self, bags: Any = 1, days: Any = 1) -> Decimal:
        return self.quote(bags, days).total


def parse_addons(raw: Any) -> List[AddOn]:
    """
    Normalize the request's add-on list.

    A non-list value is treated as empty. Entries that are not objects are
    skipped. Labels fall back to the add-on id, then "Add-on".
    """
    if not isinstance(raw, list):
        return []
    addons = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        addon_id = str(entry.get("id") or "").strip()
        label = str(entry.get("label") or "").strip() or addon_id or "Add-on"
        addons.append(AddOn(id=addon_id, label=label, amount=to_decimal(entry.get("amount"))))
    return addons


def addons_total(addons: Sequence[AddOn]) -> Decimal:
    """Sum of billable add-ons (non-positive amounts never count)"""
    return sum((a.amount for a in addons if a.amount > 0), Decimal("0"))


def build_line_items(quote: Quote, addons: Optional[Sequence[AddOn]] = None) -> List[LineItem]:
    """One line for the pass, one per billable add-on; names truncated for the processor"""
    items = [
        LineItem(
            name=safe_truncate(quote.description, LINE_ITEM_NAME_MAX, suffix=""),
            amount_minor=to_minor_units(quote.total),
        )
    ]
    for addon in addons or []:
        amount_minor = to_minor_units(addon.amount) if addon.amount > 0 else 0
        if amount_minor <= 0:
            continue
        items.append(
            LineItem(
                name=safe_truncate(addon.label, LINE_ITEM_NAME_MAX, suffix=""),
                amount_minor=amount_minor,
            )
        )
    return items


def get_pricing_engine() -> PricingEngine:
    """Factory function to get a pricing engine instance"""
    return PricingEngine()
