"""
Tests for the per-step gates.
"""

import pytest

from onboarding.state import FormData, Tier, WizardStep
from onboarding.validation import (
    credentials_errors,
    is_step_valid,
    is_valid_sebi_number,
    pricing_errors,
    profile_errors,
    step_errors,
)


@pytest.fixture
def profile_form(profile_data):
    return FormData(**profile_data)


class TestProfileGate:

    def test_complete_profile_passes(self, profile_form):
        assert profile_errors(profile_form) == {}

    def test_empty_form_reports_every_field(self):
        errors = profile_errors(FormData())
        assert set(errors) == {
            "display_name", "bio", "specializations", "languages", "years_of_experience",
        }

    @pytest.mark.parametrize("name,valid", [("ab", False), ("abc", True), ("a" * 50, True), ("a" * 51, False)])
    def test_display_name_bounds(self, profile_form, name, valid):
        profile_form.display_name = name
        assert ("display_name" not in profile_errors(profile_form)) is valid

    def test_display_name_is_trimmed_before_counting(self, profile_form):
        profile_form.display_name = "  ab  "
        assert "display_name" in profile_errors(profile_form)

    @pytest.mark.parametrize("length,valid", [(49, False), (50, True), (500, True), (501, False)])
    def test_bio_bounds(self, profile_form, length, valid):
        profile_form.bio = "x" * length
        assert ("bio" not in profile_errors(profile_form)) is valid

    def test_bio_message(self, profile_form):
        profile_form.bio = "too short"
        assert profile_errors(profile_form)["bio"] == "Bio must be between 50 and 500 characters"

    @pytest.mark.parametrize("years,valid", [(None, False), (-1, False), (0, True), (50, True), (51, False)])
    def test_experience_bounds(self, profile_form, years, valid):
        profile_form.years_of_experience = years
        assert ("years_of_experience" not in profile_errors(profile_form)) is valid

    def test_free_audience_is_optional(self, profile_form):
        profile_form.allow_free_audience = False
        assert profile_errors(profile_form) == {}


class TestPricingGate:

    def test_no_tiers(self):
        assert "pricing_tiers" in pricing_errors(FormData())

    def test_all_inactive(self):
        form = FormData(pricing_tiers=[Tier(is_active=False)])
        assert pricing_errors(form) == {"pricing_tiers": "Please enable at least one tier"}

    def test_one_active_tier_is_enough(self):
        # Weak gate: tier contents are checked by the pricing screen
        form = FormData(pricing_tiers=[Tier(is_active=False), Tier()])
        assert pricing_errors(form) == {}


class TestCredentialsGate:

    def test_requires_number_and_certificate(self):
        errors = credentials_errors(FormData())
        assert set(errors) == {"sebi_number", "sebi_certificate_url"}

    def test_ria_number_is_optional(self):
        form = FormData(sebi_number="INA000001234", sebi_certificate_url="https://files.test/c.pdf")
        assert credentials_errors(form) == {}

    @pytest.mark.parametrize("value,valid", [
        ("INA000001234", True),
        ("ina000001234", True),
        ("INA00000123", False),
        ("INH000001234", False),
        ("", False),
    ])
    def test_sebi_number_format(self, value, valid):
        assert is_valid_sebi_number(value) is valid


class TestStepErrors:

    def test_submit_step_is_always_valid(self):
        assert step_errors(FormData(), WizardStep.SUBMIT) == {}

    def test_unknown_step_is_valid(self):
        assert step_errors(FormData(), 42) == {}

    def test_dispatches_to_step_rule(self):
        assert not is_step_valid(FormData(), WizardStep.PROFILE)
        assert "pricing_tiers" in step_errors(FormData(), WizardStep.PRICING)
