"""
Onboarding Validation Rules.

Pure step gates over FormData. Every rule returns a field-keyed map of
human-readable messages; an empty map means the step is complete.

Pricing has two layers:
1. pricing_errors() here - the weak gate (any tier, any active tier), used
   for step advancement and the progress indicator.
2. TierEditor.validate_for_submit() in tiers.py - the deep per-tier gate,
   run by the pricing screen before it asks the wizard to advance.
"""

import re

from .state import FormData, WizardStep


DISPLAY_NAME_MIN = 3
DISPLAY_NAME_MAX = 50
BIO_MIN = 50
BIO_MAX = 500
EXPERIENCE_MIN = 0
EXPERIENCE_MAX = 50
MAX_TIERS = 5

SEBI_NUMBER_PATTERN = re.compile(r"^INA\d{9}$")
SEBI_FORMAT_MESSAGE = "Enter a valid SEBI registration number (e.g. INA000001234)"


def is_valid_sebi_number(value: str) -> bool:
    """Check a SEBI registration number against the INA + 9 digits format."""
    return bool(SEBI_NUMBER_PATTERN.match(value.strip().upper()))


def profile_errors(form: FormData) -> dict[str, str]:
    """Step 1: profile completeness."""
    errors = {}

    name_len = len(form.display_name.strip())
    if name_len < DISPLAY_NAME_MIN or name_len > DISPLAY_NAME_MAX:
        errors["display_name"] = (
            f"Display name must be between {DISPLAY_NAME_MIN} and {DISPLAY_NAME_MAX} characters"
        )

    bio_len = len(form.bio.strip())
    if bio_len < BIO_MIN or bio_len > BIO_MAX:
        errors["bio"] = f"Bio must be between {BIO_MIN} and {BIO_MAX} characters"

    if not form.specializations:
        errors["specializations"] = "Please select at least one specialization"

    if not form.languages:
        errors["languages"] = "Please select at least one language"

    years = form.years_of_experience
    if years is None or not EXPERIENCE_MIN <= years <= EXPERIENCE_MAX:
        errors["years_of_experience"] = (
            f"Years of experience must be between {EXPERIENCE_MIN} and {EXPERIENCE_MAX}"
        )

    return errors


def pricing_errors(form: FormData) -> dict[str, str]:
    """Step 2 (weak gate): at least one tier, at least one of them active."""
    if not form.pricing_tiers:
        return {"pricing_tiers": "Create at least one pricing tier"}
    if not any(tier.is_active for tier in form.pricing_tiers):
        return {"pricing_tiers": "Please enable at least one tier"}
    return {}


def credentials_errors(form: FormData) -> dict[str, str]:
    """Step 3: registration number entered and certificate uploaded."""
    errors = {}
    if not form.sebi_number.strip():
        errors["sebi_number"] = "SEBI registration number is required"
    if not form.sebi_certificate_url.strip():
        errors["sebi_certificate_url"] = "Please upload your SEBI certificate"
    return errors


_STEP_RULES = {
    WizardStep.PROFILE: profile_errors,
    WizardStep.PRICING: pricing_errors,
    WizardStep.CREDENTIALS: credentials_errors,
}


def step_errors(form: FormData, step: int) -> dict[str, str]:
    """Errors for a step. The submit step (and anything unknown) is always valid."""
    try:
        rule = _STEP_RULES.get(WizardStep(step))
    except ValueError:
        return {}
    return rule(form) if rule else {}


def is_step_valid(form: FormData, step: int) -> bool:
    return not step_errors(form, step)
