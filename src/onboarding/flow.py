"""
Onboarding Flow - composition root for one user's onboarding.

Builds the wizard on top of the given store and hands the same wizard and
notifier to every screen and to the submission orchestrator. Nothing is
shared through module globals.
"""

from marketplace.services.analysts import AnalystService
from marketplace.services.identity import IdentityService

from .notifications import Notifier
from .persistence import StateStore
from .screens import CredentialsStep, CredentialVerifier, PricingStep, ProfileStep, StepOutcome
from .state import WizardStep
from .submission import SubmissionOrchestrator, SubmissionStatus
from .wizard import OnboardingWizard, StepTransition, TransitionOutcome


class OnboardingFlow:
    def __init__(
        self,
        store: StateStore,
        analysts: AnalystService,
        identity: IdentityService,
        verify_credentials: CredentialVerifier | None = None,
    ):
        self.notifier = Notifier()
        self.wizard = OnboardingWizard(store)
        self.profile = ProfileStep(self.wizard, analysts, self.notifier)
        self.pricing = PricingStep(self.wizard, self.notifier)
        self.credentials = CredentialsStep(
            self.wizard, analysts, self.notifier, verify_credentials=verify_credentials
        )
        self.submission = SubmissionOrchestrator(self.wizard, analysts, identity, self.notifier)

    @property
    def screens(self) -> dict[WizardStep, object]:
        return {
            WizardStep.PROFILE: self.profile,
            WizardStep.PRICING: self.pricing,
            WizardStep.CREDENTIALS: self.credentials,
            WizardStep.SUBMIT: self.submission,
        }

    def current_screen(self):
        return self.screens[self.wizard.current_step]

    async def submit_credentials(
        self, sebi_number: str | None = None, ria_number: str | None = None
    ) -> StepOutcome:
        """Finish step 3; reaching step 4 starts the submission immediately."""
        outcome = await self.credentials.submit(sebi_number, ria_number)
        if outcome.success and self.wizard.current_step == WizardStep.SUBMIT:
            await self.submission.submit()
        return outcome

    async def go_to_step(self, step: int) -> StepTransition:
        """Jump to a step; landing on step 4 from an earlier step starts the submission."""
        transition = self.wizard.go_to_step(step)
        if transition.outcome == TransitionOutcome.ADVANCED and transition.step == WizardStep.SUBMIT:
            await self.submission.submit()
        return transition

    async def enter_submit_step(self) -> SubmissionStatus:
        """Submit for a session resumed on step 4 (e.g. after a reload)."""
        if self.wizard.current_step != WizardStep.SUBMIT:
            return self.submission.status
        if self.submission.status == SubmissionStatus.FAILED:
            return await self.submission.retry()
        return await self.submission.submit()
