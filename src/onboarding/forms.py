"""
Onboarding Forms - raw screen input normalization.

Pydantic models coerce and clean what the screens receive (strings trimmed,
duplicate selections dropped, numbers parsed). They do NOT enforce the step
rules - that is validation.py, which produces the user-facing messages.
"""

import logging

from pydantic import BaseModel, Field, field_validator

from .validation import (
    BIO_MAX,
    BIO_MIN,
    DISPLAY_NAME_MAX,
    DISPLAY_NAME_MIN,
    EXPERIENCE_MAX,
    EXPERIENCE_MIN,
    MAX_TIERS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Options
# =============================================================================
# Suggested values for the selection chips. Unknown values are accepted
# (logged) so the backend can extend the lists without a client release.

SPECIALIZATIONS = [
    "Equity",
    "Derivatives",
    "Commodities",
    "Forex",
    "Technical Analysis",
    "Fundamental Analysis",
    "Options Trading",
    "Swing Trading",
    "Intraday Trading",
]

LANGUAGES = [
    "English",
    "Hindi",
    "Tamil",
    "Telugu",
    "Kannada",
    "Malayalam",
    "Marathi",
    "Bengali",
    "Gujarati",
]


def _dedupe(values: list[str] | None) -> list[str]:
    if isinstance(values, str):
        values = [values]
    if values is not None and not isinstance(values, (list, tuple, set)):
        raise ValueError("Expected a list of strings")
    seen = []
    for v in values or []:
        if not isinstance(v, str):
            raise ValueError("Expected a list of strings")
        if v.strip() and v.strip() not in seen:
            seen.append(v.strip())
    return seen


# =============================================================================
# Form Models
# =============================================================================

class ProfileForm(BaseModel):
    """Step 1: profile fields as entered."""

    display_name: str = ""
    bio: str = ""
    specializations: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    years_of_experience: int | None = None
    allow_free_audience: bool = False

    @field_validator("display_name", "bio", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("specializations", mode="before")
    @classmethod
    def normalize_specializations(cls, v: list[str]) -> list[str]:
        values = _dedupe(v)
        unknown = set(values) - set(SPECIALIZATIONS)
        if unknown:
            logger.info(f"Custom specializations submitted: {unknown}")
        return values

    @field_validator("languages", mode="before")
    @classmethod
    def normalize_languages(cls, v: list[str]) -> list[str]:
        values = _dedupe(v)
        unknown = set(values) - set(LANGUAGES)
        if unknown:
            logger.info(f"Custom languages submitted: {unknown}")
        return values

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def blank_years_is_unset(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v


class CredentialsForm(BaseModel):
    """Step 3: registration numbers as entered."""

    sebi_number: str = ""
    ria_number: str = ""

    @field_validator("sebi_number", "ria_number", mode="before")
    @classmethod
    def normalize_number(cls, v: str | None) -> str:
        return ("" if v is None else str(v)).strip().upper()


# =============================================================================
# API Response Helpers
# =============================================================================

def get_form_options() -> dict:
    """
    Get all form options for frontend rendering.

    Returns dict with:
    - specializations / languages: selection chips
    - limits: the bounds the step rules enforce
    """
    return {
        "specializations": SPECIALIZATIONS,
        "languages": LANGUAGES,
        "limits": {
            "display_name": {"min": DISPLAY_NAME_MIN, "max": DISPLAY_NAME_MAX},
            "bio": {"min": BIO_MIN, "max": BIO_MAX},
            "years_of_experience": {"min": EXPERIENCE_MIN, "max": EXPERIENCE_MAX},
            "max_tiers": MAX_TIERS,
        },
    }
