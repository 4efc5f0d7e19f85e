"""
Onboarding Payload Definition.

The SubmissionPayload is the contract between onboarding and the analyst
setup endpoint. It is derived from the accumulated FormData; the derivation
is pure, so rebuilding it from unchanged state yields the same payload.
"""

from dataclasses import dataclass, field, asdict
import json

from .state import FormData, Tier
from .tiers import clean_features, is_valid_price, parse_price


@dataclass
class PricingTierPayload:
    """An active tier as sent to the backend."""
    name: str
    features: list[str] = field(default_factory=list)
    weeklyPrice: float | None = None
    monthlyPrice: float | None = None
    yearlyPrice: float | None = None
    isActive: bool = True

    @classmethod
    def from_tier(cls, tier: Tier) -> "PricingTierPayload":
        def price(value):
            return parse_price(value) if is_valid_price(value) else None

        return cls(
            name=tier.name.strip(),
            features=clean_features(tier),
            weeklyPrice=price(tier.weekly_price),
            monthlyPrice=price(tier.monthly_price),
            yearlyPrice=price(tier.yearly_price),
            isActive=True,
        )


@dataclass
class SubmissionPayload:
    """Complete onboarding application."""

    # Profile
    display_name: str = ""
    bio: str = ""
    specializations: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    years_of_experience: int | None = None
    allow_free_audience: bool = False
    profile_photo_url: str = ""

    # Pricing (active tiers only)
    pricing_tiers: list[PricingTierPayload] = field(default_factory=list)

    # SEBI credentials
    sebi_number: str = ""
    ria_number: str = ""
    sebi_certificate_url: str = ""

    def to_dict(self) -> dict:
        """Serialize for transfer."""
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def summary(self) -> dict:
        """Short application summary for the success screen."""
        tier_count = len(self.pricing_tiers)
        credentials = f"SEBI: {self.sebi_number}"
        if self.ria_number:
            credentials += f" • RIA: {self.ria_number}"
        return {
            "profile": f"{self.display_name} • {self.years_of_experience} years experience",
            "pricing": (
                f"{tier_count} tier{'s' if tier_count != 1 else ''}"
                if tier_count else "No pricing tiers configured"
            ),
            "credentials": credentials,
        }


def build_payload_from_state(form: FormData) -> SubmissionPayload:
    """
    Build the SubmissionPayload from accumulated form data.

    Profile and credential slices are copied verbatim; pricing is reduced to
    active tiers with blank features stripped and prices coerced to numbers.
    """
    return SubmissionPayload(
        display_name=form.display_name,
        bio=form.bio,
        specializations=list(form.specializations),
        languages=list(form.languages),
        years_of_experience=form.years_of_experience,
        allow_free_audience=form.allow_free_audience,
        profile_photo_url=form.profile_photo_url,
        pricing_tiers=[
            PricingTierPayload.from_tier(t) for t in form.pricing_tiers if t.is_active
        ],
        sebi_number=form.sebi_number,
        ria_number=form.ria_number,
        sebi_certificate_url=form.sebi_certificate_url,
    )
