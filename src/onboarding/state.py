"""
Onboarding State Management.

Tracks the wizard's step cursor and accumulates the analyst's form data.
State is persisted after every mutation so an interrupted onboarding resumes
where the analyst left off (see persistence.py).
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any
import json
import uuid


# Storage key for the persisted record, scoped per user by the stores
ONBOARDING_STORAGE_KEY = "analyst_onboarding_data"

# Raw price input: None/"" means "not set"
PriceInput = float | int | str | None


class WizardStep(IntEnum):
    """Onboarding wizard steps, in order."""
    PROFILE = 1
    PRICING = 2
    CREDENTIALS = 3
    SUBMIT = 4                  # Success/submit, terminal


FIRST_STEP = WizardStep.PROFILE
LAST_STEP = WizardStep.SUBMIT
TOTAL_STEPS = len(WizardStep)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_tier_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Tier:
    """One subscription pricing plan offered by the analyst."""
    id: str = field(default_factory=new_tier_id)
    name: str = ""
    features: list[str] = field(default_factory=lambda: [""])
    weekly_price: PriceInput = None
    monthly_price: PriceInput = None
    yearly_price: PriceInput = None
    is_active: bool = True

    def to_dict(self) -> dict:
        """Serialize using the wire/storage key names."""
        return {
            "id": self.id,
            "name": self.name,
            "features": list(self.features),
            "weeklyPrice": self.weekly_price,
            "monthlyPrice": self.monthly_price,
            "yearlyPrice": self.yearly_price,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tier":
        """Deserialize, accepting both camelCase and snake_case price keys."""
        if not isinstance(data, dict):
            raise TypeError(f"Pricing tier must be an object, got {type(data).__name__}")
        return cls(
            id=str(data.get("id") or new_tier_id()),
            name=_coerce_text(data.get("name")),
            features=_coerce_text_list(data.get("features", [""])) or [""],
            weekly_price=data.get("weeklyPrice", data.get("weekly_price")),
            monthly_price=data.get("monthlyPrice", data.get("monthly_price")),
            yearly_price=data.get("yearlyPrice", data.get("yearly_price")),
            is_active=bool(data.get("isActive", data.get("is_active", True))),
        )


TEXT_FIELDS = (
    "display_name",
    "bio",
    "profile_photo_url",
    "sebi_number",
    "ria_number",
    "sebi_certificate_url",
)


@dataclass
class FormData:
    """
    Aggregate onboarding form data.

    Only ever changed by merge() or replaced wholesale on reset.
    """

    # Step 1: Profile
    display_name: str = ""
    bio: str = ""
    specializations: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    years_of_experience: int | None = None
    allow_free_audience: bool = False
    profile_photo_url: str = ""

    # Step 2: Pricing
    pricing_tiers: list[Tier] = field(default_factory=list)

    # Step 3: SEBI credentials
    sebi_number: str = ""
    ria_number: str = ""
    sebi_certificate_url: str = ""

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def merge(self, partial: dict[str, Any]) -> tuple["FormData", list[str]]:
        """
        Shallow-merge `partial` into a copy of this form.

        Returns (merged, ignored_keys). Keys absent from `partial` are untouched.
        """
        known = self.field_names()
        ignored = [k for k in partial if k not in known]
        data = self.to_dict()
        data.update({k: v for k, v in partial.items() if k in known})
        return FormData.from_dict(data), ignored

    def to_dict(self) -> dict:
        """Serialize form data for JSON storage."""
        data = asdict(self)
        data["pricing_tiers"] = [t.to_dict() for t in self.pricing_tiers]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FormData":
        """Deserialize form data, tolerating missing keys."""
        known = cls.field_names()
        data = {k: v for k, v in data.items() if k in known}
        data["pricing_tiers"] = [
            t if isinstance(t, Tier) else Tier.from_dict(t)
            for t in data.get("pricing_tiers") or []
        ]
        for key in TEXT_FIELDS:
            if key in data:
                data[key] = _coerce_text(data[key])
        for key in ("specializations", "languages"):
            if key in data:
                data[key] = _coerce_text_list(data[key])
        if "allow_free_audience" in data:
            data["allow_free_audience"] = bool(data["allow_free_audience"])
        if "years_of_experience" in data:
            data["years_of_experience"] = _coerce_years(data["years_of_experience"])
        return cls(**data)


def _coerce_text(value: Any) -> str:
    """Drafts may send null or numbers for text fields; store them as strings."""
    return "" if value is None else str(value)


def _coerce_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"Expected a list, got {type(value).__name__}")
    return [_coerce_text(item) for item in value]


def _coerce_years(value: Any) -> int | None:
    """Years arrive as '' / '12' / 12 from drafts; anything non-integral is unset."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass
class WizardState:
    """
    Live onboarding session state.

    Persisted as {"formData", "currentStep", "timestamp"}.
    """
    form_data: FormData = field(default_factory=FormData)
    current_step: WizardStep = FIRST_STEP
    timestamp: str = ""

    def __post_init__(self):
        """Set timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = utc_now_iso()
        self.current_step = WizardStep(self.current_step)

    def to_dict(self) -> dict:
        """Serialize state to the persisted record shape."""
        return {
            "formData": self.form_data.to_dict(),
            "currentStep": int(self.current_step),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WizardState":
        """Deserialize state from the persisted record shape."""
        step = int(data.get("currentStep") or FIRST_STEP)
        step = min(max(step, FIRST_STEP), LAST_STEP)
        return cls(
            form_data=FormData.from_dict(data.get("formData") or {}),
            current_step=WizardStep(step),
            timestamp=data.get("timestamp", ""),
        )

    def to_json(self) -> str:
        """Serialize state to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "WizardState":
        """Deserialize state from JSON string."""
        data = json.loads(json_str)
        if not isinstance(data, dict):
            raise ValueError("Persisted onboarding state must be a JSON object")
        return cls.from_dict(data)
