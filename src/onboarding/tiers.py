"""
Onboarding Pricing - Tier Collection Editor.

Manages the ordered, bounded list of pricing tiers for step 2:
- 1 to 5 tiers (the last tier can be deactivated but never removed)
- Inactive tiers keep their data, so toggling is lossless
- Every edit writes through to the wizard (and so to persistence)

validate_for_submit() is the deep gate the pricing screen runs before asking
the wizard to advance. The wizard's own step-2 gate only checks that an
active tier exists.
"""

import logging
import math
from dataclasses import replace
from typing import TYPE_CHECKING

from .notifications import Notifier
from .state import PriceInput, Tier
from .validation import MAX_TIERS

if TYPE_CHECKING:
    from .wizard import OnboardingWizard

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("weekly_price", "monthly_price", "yearly_price")
EDITABLE_FIELDS = {"name", *PRICE_FIELDS}

# Accept the wire names used by the frontend payload
FIELD_ALIASES = {
    "weeklyPrice": "weekly_price",
    "monthlyPrice": "monthly_price",
    "yearlyPrice": "yearly_price",
}


# =============================================================================
# Price helpers
# =============================================================================

def is_price_set(value: PriceInput) -> bool:
    if value is None:
        return False
    return str(value).strip() != ""


def parse_price(value: PriceInput) -> float | None:
    """Coerce a raw price to float; None when unset, NaN when unparseable."""
    if not is_price_set(value):
        return None
    if isinstance(value, bool):
        return math.nan
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def is_valid_price(value: PriceInput) -> bool:
    price = parse_price(value)
    return price is not None and math.isfinite(price) and price > 0


def monthly_equivalent(tier: Tier) -> float:
    """Normalized per-month figure for display. Never persisted."""
    for value, factor in (
        (tier.monthly_price, 1),
        (tier.yearly_price, 1 / 12),
        (tier.weekly_price, 4),
    ):
        if is_valid_price(value):
            return parse_price(value) * factor
    return 0.0


def format_monthly_equivalent(tier: Tier) -> str:
    return f"₹{monthly_equivalent(tier):.0f}/month"


def clean_features(tier: Tier) -> list[str]:
    return [f.strip() for f in tier.features if f and f.strip()]


# =============================================================================
# Deep validation
# =============================================================================

def tier_errors(tier: Tier, index: int) -> dict[str, str]:
    """Field errors for one active tier, keyed tier_{index}_{field}."""
    key = f"tier_{index}"
    errors = {}

    if not tier.name.strip():
        errors[f"{key}_name"] = "Tier name is required"

    if not clean_features(tier):
        errors[f"{key}_features"] = "Add at least one feature"

    if not any(is_price_set(getattr(tier, f)) for f in PRICE_FIELDS):
        errors[f"{key}_prices"] = "Provide at least one pricing option (weekly, monthly, or yearly)"

    for price_field, label in zip(PRICE_FIELDS, ("weekly", "monthly", "yearly")):
        value = getattr(tier, price_field)
        if is_price_set(value) and not is_valid_price(value):
            errors[f"{key}_{label}"] = f"Invalid {label} price"

    weekly = parse_price(tier.weekly_price) if is_valid_price(tier.weekly_price) else None
    monthly = parse_price(tier.monthly_price) if is_valid_price(tier.monthly_price) else None
    yearly = parse_price(tier.yearly_price) if is_valid_price(tier.yearly_price) else None

    if weekly is not None and monthly is not None and weekly * 4 >= monthly:
        errors[f"{key}_weekly_monthly"] = "Weekly price should be less than monthly when both are set"

    # Yearly plans are a discount on twelve monthly payments
    if monthly is not None and yearly is not None and yearly >= monthly * 12:
        errors[f"{key}_monthly_yearly"] = "Yearly price should offer savings compared to monthly"

    return errors


def validate_tiers(tiers: list[Tier]) -> dict[str, str]:
    """Deep gate over a tier list; empty dict means valid."""
    if not any(t.is_active for t in tiers):
        return {"tiers": "Please enable at least one tier"}

    errors = {}
    for index, tier in enumerate(tiers):
        if tier.is_active:
            errors.update(tier_errors(tier, index))
    return errors


# =============================================================================
# Editor
# =============================================================================

class TierEditor:
    """Edits the wizard's pricing slice. Failed edits are no-ops with a notice."""

    def __init__(self, wizard: "OnboardingWizard", notifier: Notifier | None = None):
        self.wizard = wizard
        self.notifier = notifier or Notifier()

    @property
    def tiers(self) -> list[Tier]:
        return list(self.wizard.form_data.pricing_tiers)

    def get_tier(self, tier_id: str) -> Tier | None:
        return next((t for t in self.tiers if t.id == tier_id), None)

    def _commit(self, tiers: list[Tier]) -> None:
        self.wizard.update_form_data(pricing_tiers=tiers)

    def _replace_tier(self, tier_id: str, **changes) -> bool:
        tiers = self.tiers
        for i, tier in enumerate(tiers):
            if tier.id == tier_id:
                tiers[i] = replace(tier, **changes)
                self._commit(tiers)
                return True
        logger.warning(f"Unknown tier id: {tier_id}")
        return False

    # -- Tiers ----------------------------------------------------------------

    def ensure_tier(self) -> None:
        """Seed one empty tier the first time the pricing step is opened."""
        if not self.tiers:
            self._commit([Tier()])

    def add_tier(self) -> Tier | None:
        tiers = self.tiers
        if len(tiers) >= MAX_TIERS:
            self.notifier.error(f"You can create a maximum of {MAX_TIERS} tiers")
            return None
        tier = Tier()
        self._commit(tiers + [tier])
        return tier

    def remove_tier(self, tier_id: str) -> bool:
        tiers = self.tiers
        if len(tiers) <= 1:
            self.notifier.error("You must have at least one tier")
            return False
        remaining = [t for t in tiers if t.id != tier_id]
        if len(remaining) == len(tiers):
            logger.warning(f"Unknown tier id: {tier_id}")
            return False
        self._commit(remaining)
        return True

    def toggle_tier_active(self, tier_id: str) -> bool:
        tier = self.get_tier(tier_id)
        if tier is None:
            return False
        return self._replace_tier(tier_id, is_active=not tier.is_active)

    def update_tier_field(self, tier_id: str, field: str, value) -> bool:
        field = FIELD_ALIASES.get(field, field)
        if field not in EDITABLE_FIELDS:
            logger.warning(f"Tier field not editable: {field}")
            return False
        if field == "name":
            value = "" if value is None else str(value)
        return self._replace_tier(tier_id, **{field: value})

    # -- Features -------------------------------------------------------------

    def add_feature(self, tier_id: str) -> bool:
        tier = self.get_tier(tier_id)
        if tier is None:
            return False
        return self._replace_tier(tier_id, features=tier.features + [""])

    def remove_feature(self, tier_id: str, index: int) -> bool:
        tier = self.get_tier(tier_id)
        if tier is None or not 0 <= index < len(tier.features):
            return False
        if len(tier.features) <= 1:
            return False
        features = tier.features[:index] + tier.features[index + 1:]
        return self._replace_tier(tier_id, features=features)

    def update_feature(self, tier_id: str, index: int, text: str) -> bool:
        tier = self.get_tier(tier_id)
        if tier is None or not 0 <= index < len(tier.features):
            return False
        features = list(tier.features)
        features[index] = text
        return self._replace_tier(tier_id, features=features)

    # -- Validation -----------------------------------------------------------

    def validate_for_submit(self) -> dict[str, str]:
        return validate_tiers(self.tiers)
