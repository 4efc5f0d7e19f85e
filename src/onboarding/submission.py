"""
Onboarding Submission Orchestrator.

Runs on entering the final step:
1. Build the payload from the accumulated form data (once, then cached)
2. Send it to the analyst setup endpoint
3. Success: mark the cached identity as submitted/pending verification,
   reset the wizard (erasing the persisted copy), notify
4. Failure: leave wizard state untouched and keep the error for a
   user-initiated retry with the same payload

There is no automatic retry or backoff.
"""

import logging
from enum import Enum

from marketplace.services.analysts import AnalystService
from marketplace.services.http import APIError
from marketplace.services.identity import IdentityService

from .notifications import Notifier
from .payload import SubmissionPayload, build_payload_from_state
from .state import WizardStep
from .wizard import OnboardingWizard

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = "Failed to submit application"


class SubmissionStatus(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SubmissionOrchestrator:
    """Sends one user's composed application exactly once."""

    def __init__(
        self,
        wizard: OnboardingWizard,
        analysts: AnalystService,
        identity: IdentityService,
        notifier: Notifier | None = None,
    ):
        self.wizard = wizard
        self.analysts = analysts
        self.identity = identity
        self.notifier = notifier or Notifier()

        self.status = SubmissionStatus.IDLE
        self.payload: SubmissionPayload | None = None
        self.error_message: str | None = None
        self.summary: dict | None = None

    @property
    def can_retry(self) -> bool:
        return self.status == SubmissionStatus.FAILED

    def build_payload(self) -> SubmissionPayload:
        """Derive the payload unless one is already cached."""
        if self.payload is None:
            self.payload = build_payload_from_state(self.wizard.form_data)
        return self.payload

    async def submit(self) -> SubmissionStatus:
        """Submit the application. A no-op once it has succeeded or while in flight."""
        if self.status in (SubmissionStatus.SUCCEEDED, SubmissionStatus.SUBMITTING):
            return self.status
        if self.wizard.current_step != WizardStep.SUBMIT:
            logger.warning(
                f"Submission requested on step {int(self.wizard.current_step)}; waiting for the submit step"
            )
            return self.status

        payload = self.build_payload()
        self.status = SubmissionStatus.SUBMITTING
        self.error_message = None

        try:
            await self.analysts.setup_profile(payload.to_dict())
        except APIError as e:
            self.status = SubmissionStatus.FAILED
            self.error_message = e.message or SUBMIT_FAILED_MESSAGE
            logger.error(f"Onboarding submission error: {self.error_message}")
            self.notifier.error(self.error_message)
            return self.status

        self.identity.update_cached_profile(
            display_name=payload.display_name,
            profile_completed=False,  # Still needs admin verification
            verification_status="pending",
        )
        self.summary = payload.summary()
        self.wizard.reset_onboarding()
        self.status = SubmissionStatus.SUCCEEDED
        self.notifier.success("Application submitted successfully!")
        return self.status

    async def retry(self) -> SubmissionStatus:
        """Resend the cached payload after a failure."""
        if not self.can_retry:
            return self.status
        return await self.submit()

    def restart(self) -> None:
        """Drop the cached payload so the next submit re-derives it."""
        self.payload = None
        self.error_message = None
        if self.status != SubmissionStatus.SUCCEEDED:
            self.status = SubmissionStatus.IDLE
