"""
Onboarding Step Screens.

Headless controllers for steps 1-3. Each screen reads and writes its slice of
the wizard's form data and asks the wizard to advance only after its own
checks pass. A failed submit notifies the user, returns the field errors and
leaves both the step cursor and the form data untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from pydantic import ValidationError

from marketplace.services.analysts import AnalystService
from marketplace.services.http import APIError

from .forms import CredentialsForm, ProfileForm
from .notifications import Notifier
from .state import WizardStep
from .tiers import TierEditor
from .uploads import UploadFile, UploadKind, check_upload
from .validation import SEBI_FORMAT_MESSAGE, credentials_errors, is_valid_sebi_number, profile_errors
from .wizard import OnboardingWizard, StepTransition

logger = logging.getLogger(__name__)

FIX_ERRORS_MESSAGE = "Please fix the errors before continuing"

# Async hook asking the Credential Service whether a registration number is genuine
CredentialVerifier = Callable[[str], Awaitable[bool]]

PROFILE_FIELDS = (
    "display_name",
    "bio",
    "specializations",
    "languages",
    "years_of_experience",
    "allow_free_audience",
)


@dataclass
class StepOutcome:
    """Result of submitting a screen."""
    success: bool
    errors: dict[str, str] = field(default_factory=dict)
    transition: StepTransition | None = None


class StepScreen:
    """Common plumbing: the wizard, a notifier and the step this screen owns."""

    step: WizardStep

    def __init__(self, wizard: OnboardingWizard, notifier: Notifier | None = None):
        self.wizard = wizard
        self.notifier = notifier or Notifier()

    def _reject(self, errors: dict[str, str], message: str = FIX_ERRORS_MESSAGE) -> StepOutcome:
        self.notifier.error(message)
        return StepOutcome(success=False, errors=errors)

    def _advance(self, saved_message: str) -> StepOutcome:
        """Advance if the wizard is on this screen's step; data is already committed."""
        if self.wizard.current_step != self.step:
            logger.info(f"Saved step {int(self.step)} while wizard is on step {int(self.wizard.current_step)}")
            self.notifier.success(saved_message)
            return StepOutcome(success=True)

        transition = self.wizard.advance()
        if not transition.moved:
            return self._reject(transition.errors)
        self.notifier.success(saved_message)
        return StepOutcome(success=True, transition=transition)

    def back(self) -> StepTransition:
        return self.wizard.prev_step()


# =============================================================================
# Step 1: Profile
# =============================================================================

class ProfileStep(StepScreen):
    step = WizardStep.PROFILE

    def __init__(
        self,
        wizard: OnboardingWizard,
        analysts: AnalystService,
        notifier: Notifier | None = None,
    ):
        super().__init__(wizard, notifier)
        self.analysts = analysts
        self.pending_photo: UploadFile | None = None

    def draft(self) -> dict:
        data = self.wizard.form_data.to_dict()
        return {k: data[k] for k in (*PROFILE_FIELDS, "profile_photo_url")}

    def save_draft(self, **fields) -> None:
        """Persist in-progress input without validating it."""
        self.wizard.update_form_data({k: v for k, v in fields.items() if k in PROFILE_FIELDS})

    def select_photo(self, file: UploadFile) -> bool:
        """Hold a photo for upload on submit; rejected files are dropped with a notice."""
        problem = check_upload(UploadKind.PROFILE_PHOTO, file)
        if problem:
            self.notifier.error(problem)
            return False
        self.pending_photo = file
        return True

    async def upload_photo(self, file: UploadFile) -> bool:
        """Check and upload a photo right away (for hosts that cannot hold it until submit)."""
        if not self.select_photo(file):
            return False
        try:
            url = await self.analysts.upload_profile_photo(file.filename, file.content, file.content_type)
        except APIError as e:
            self.notifier.error(e.message or "Failed to upload photo")
            return False
        finally:
            self.pending_photo = None
        self.wizard.update_form_data(profile_photo_url=url)
        return True

    def _parse(self, fields: dict) -> tuple[ProfileForm, set[str]]:
        """Parse input; fields that fail coercion fall back to their empty value."""
        try:
            return ProfileForm(**fields), set()
        except ValidationError as e:
            bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            cleaned = {k: v for k, v in fields.items() if k not in bad}
            return ProfileForm(**cleaned), bad

    async def submit(self, **fields) -> StepOutcome:
        raw = {k: v for k, v in {**self.draft(), **fields}.items() if k in PROFILE_FIELDS}
        form, bad_fields = self._parse(raw)

        candidate, _ = self.wizard.form_data.merge(form.model_dump())
        errors = profile_errors(candidate)
        for name in bad_fields - errors.keys():
            errors[name] = "Invalid value"
        if errors:
            return self._reject(errors)

        photo_url = self.wizard.form_data.profile_photo_url
        if self.pending_photo is not None:
            photo = self.pending_photo
            try:
                photo_url = await self.analysts.upload_profile_photo(
                    photo.filename, photo.content, photo.content_type
                )
            except APIError as e:
                message = e.message or "Failed to save profile information"
                self.notifier.error(message)
                return StepOutcome(success=False, errors={"profile_photo": message})
            self.pending_photo = None

        self.wizard.update_form_data(form.model_dump(), profile_photo_url=photo_url)
        return self._advance("Profile information saved!")


# =============================================================================
# Step 2: Pricing
# =============================================================================

class PricingStep(StepScreen):
    step = WizardStep.PRICING

    def __init__(self, wizard: OnboardingWizard, notifier: Notifier | None = None):
        super().__init__(wizard, notifier)
        self.editor = TierEditor(wizard, self.notifier)

    def open(self) -> None:
        self.editor.ensure_tier()

    def submit(self) -> StepOutcome:
        """Deep tier validation first, then the wizard's own gate."""
        errors = self.editor.validate_for_submit()
        if errors:
            if "tiers" in errors:
                return self._reject(errors, errors["tiers"])
            return self._reject(errors)
        return self._advance("Pricing configuration saved!")


# =============================================================================
# Step 3: SEBI credentials
# =============================================================================

class CredentialsStep(StepScreen):
    step = WizardStep.CREDENTIALS

    def __init__(
        self,
        wizard: OnboardingWizard,
        analysts: AnalystService,
        notifier: Notifier | None = None,
        verify_credentials: CredentialVerifier | None = None,
    ):
        super().__init__(wizard, notifier)
        self.analysts = analysts
        self.verify_credentials = verify_credentials

    async def upload_certificate(self, file: UploadFile) -> bool:
        """Check and upload the certificate; the URL lands in the form data on success."""
        problem = check_upload(UploadKind.CERTIFICATE, file)
        if problem:
            self.notifier.error(problem)
            return False

        try:
            url = await self.analysts.upload_certificate(file.filename, file.content, file.content_type)
        except APIError as e:
            self.notifier.error(e.message or "Failed to upload certificate")
            return False

        self.wizard.update_form_data(sebi_certificate_url=url)
        self.notifier.success("Certificate uploaded")
        return True

    async def _is_accepted(self, sebi_number: str) -> bool:
        if is_valid_sebi_number(sebi_number):
            return True
        if self.verify_credentials is None:
            return False
        try:
            return await self.verify_credentials(sebi_number)
        except APIError as e:
            logger.warning(f"Credential check failed for {sebi_number}: {e.message}")
            return False

    async def submit(self, sebi_number: str | None = None, ria_number: str | None = None) -> StepOutcome:
        current = self.wizard.form_data
        form = CredentialsForm(
            sebi_number=current.sebi_number if sebi_number is None else sebi_number,
            ria_number=current.ria_number if ria_number is None else ria_number,
        )

        candidate, _ = current.merge(form.model_dump())
        errors = credentials_errors(candidate)
        if "sebi_number" not in errors and not await self._is_accepted(form.sebi_number):
            errors["sebi_number"] = SEBI_FORMAT_MESSAGE
        if errors:
            return self._reject(errors)

        self.wizard.update_form_data(form.model_dump())
        return self._advance("SEBI information saved!")
